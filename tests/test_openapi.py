"""Tests for the bundled OpenAPI document loader (src/openapi.py)."""

import pytest
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR

from src.openapi import load_openapi_spec


class TestLoadOpenAPISpec:
    def test_bundled_document_describes_search(self):
        document = load_openapi_spec()

        operation = document["paths"]["/search"]["post"]
        assert operation["operationId"] == "search"
        assert "JURI" in document["components"]["schemas"]["SearchRequestDTO"]["properties"]["fond"]["enum"]

    def test_missing_file_is_internal_error(self, tmp_path):
        with pytest.raises(McpError) as exc_info:
            load_openapi_spec(tmp_path / "absent.json")

        assert exc_info.value.error.code == INTERNAL_ERROR
        assert exc_info.value.error.message == "Failed to load OpenAPI specification"

    def test_invalid_json_is_internal_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(McpError) as exc_info:
            load_openapi_spec(path)

        assert exc_info.value.error.code == INTERNAL_ERROR
