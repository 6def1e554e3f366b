"""
Bundled Légifrance OpenAPI excerpt.

The server ships the OpenAPI description of the /search operation it calls,
in src/specs/legifrance.json. It is exposed as the read-only MCP resource
`legifrance://openapi` so that clients can inspect the request and response
shapes. The dispatcher never reads it: the search document is fixed in
src/tools.py.
"""

import json
from pathlib import Path
from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, ErrorData

from src.log import get_logger

logger = get_logger("openapi")

OPENAPI_RESOURCE_URI = "legifrance://openapi"
SPEC_PATH = Path(__file__).parent / "specs" / "legifrance.json"


def load_openapi_spec(path: Path = SPEC_PATH) -> dict[str, Any]:
    """
    Read and parse the bundled OpenAPI document.

    Raises:
        McpError: INTERNAL_ERROR if the file is missing or is not valid JSON.
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Error loading OpenAPI spec from %s: %s", path, exc)
        raise McpError(
            ErrorData(code=INTERNAL_ERROR, message="Failed to load OpenAPI specification")
        ) from exc
