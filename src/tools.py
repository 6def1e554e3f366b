"""
The searchLegifrance tool: descriptor, search document and dispatcher.

The server exposes exactly one MCP tool:

    searchLegifrance(query: str)

Calling it runs one request/response cycle:

    1. validate the tool name and the `query` argument
    2. get a bearer token from the TokenProvider (cached after the first call)
    3. POST a fixed-shape search document to <LEGIFRANCE_API_URL>/search
    4. return the raw JSON response as a single text content block

Errors are raised as McpError with the JSON-RPC codes from mcp.types:

    unknown tool name          -> METHOD_NOT_FOUND  "Tool not found: <name>"
    missing / non-string query -> INVALID_PARAMS    "Missing or invalid query parameter"
    token exchange failed      -> INTERNAL_ERROR    "Failed to get access token"
    search failed / non-200    -> INTERNAL_ERROR    "Failed to call Legifrance API"

Validation happens before any network activity. Diagnostic details (status
codes, response bodies) go to the log, not to the caller.

Why keep the dispatcher separate from server.py?
- It has no FastMCP dependency, so the list/call contract can be tested
  directly, without a protocol session.
- server.py installs it as the tools/list and tools/call handlers.
"""

import json
from typing import Any

import httpx
from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    CallToolResult,
    ErrorData,
    TextContent,
    Tool,
)

from src.auth import AuthenticationError, TokenProvider
from src.config import Settings
from src.log import get_logger

logger = get_logger("tools")

TOOL_NAME = "searchLegifrance"
TOOL_DESCRIPTION = "Search Legifrance documents"
QUERY_DESCRIPTION = "Search query"

INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": QUERY_DESCRIPTION,
        }
    },
    "required": ["query"],
}

# Static parameters of the search document.
# FOND: the document collection searched ("JURI" = case law).
FOND = "JURI"
PAGE_SIZE = 10
PAGE_NUMBER = 1
SORT = "SIGNATURE_DATE_DESC"
PAGINATION_TYPE = "DEFAUT"
FIELD_TYPE = "ALL"
SEARCH_TYPE = "TOUS_LES_MOTS_DANS_UN_CHAMP"
OPERATOR = "ET"


class LegifranceAPIError(Exception):
    """
    Raised when the search endpoint answers with a status other than 200.

    Attributes:
        status_code: HTTP status returned by the API
        body: Response body, kept for the logs
    """

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API returned status {status_code}")


def build_search_request(query: str) -> dict[str, Any]:
    """
    Build the search document sent to /search.

    Everything is fixed except the criterion value: one "all words in one
    field" clause over the whole document, ANDed, newest decisions first.
    """
    return {
        "fond": FOND,
        "recherche": {
            "pageSize": PAGE_SIZE,
            "pageNumber": PAGE_NUMBER,
            "sort": SORT,
            "typePagination": PAGINATION_TYPE,
            "champs": [
                {
                    "typeChamp": FIELD_TYPE,
                    "operateur": OPERATOR,
                    "criteres": [
                        {
                            "typeRecherche": SEARCH_TYPE,
                            "valeur": query,
                            "operateur": OPERATOR,
                        }
                    ],
                }
            ],
            "operateur": OPERATOR,
        },
    }


def _error(code: int, message: str, data: Any = None) -> McpError:
    return McpError(ErrorData(code=code, message=message, data=data))


class ToolDispatcher:
    """
    Advertises the searchLegifrance tool and executes calls to it.

    The TokenProvider and the httpx client are injected, so the dispatcher
    owns no global state.
    """

    def __init__(
        self,
        settings: Settings,
        token_provider: TokenProvider,
        http_client: httpx.AsyncClient,
    ):
        self._settings = settings
        self._token_provider = token_provider
        self._http_client = http_client

    def list_tools(self) -> list[Tool]:
        """Return the single tool descriptor. Independent of any call state."""
        return [
            Tool(
                name=TOOL_NAME,
                description=TOOL_DESCRIPTION,
                inputSchema=INPUT_SCHEMA,
            )
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """
        Execute a tool call.

        Raises:
            McpError: METHOD_NOT_FOUND, INVALID_PARAMS or INTERNAL_ERROR,
                see the module docstring.
        """
        if name != TOOL_NAME:
            raise _error(METHOD_NOT_FOUND, f"Tool not found: {name}")

        query = arguments.get("query") if isinstance(arguments, dict) else None
        if not isinstance(query, str):
            raise _error(INVALID_PARAMS, "Missing or invalid query parameter")

        try:
            token = await self._token_provider.get_token()
        except AuthenticationError as exc:
            # Already logged by the provider.
            raise _error(INTERNAL_ERROR, "Failed to get access token") from exc

        try:
            body = await self._search(token, query)
        except LegifranceAPIError as exc:
            raise _error(
                INTERNAL_ERROR, "Failed to call Legifrance API", {"status": exc.status_code}
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "Search request failed",
                extra={"log_data": {"event": "api_error", "error": str(exc)}},
            )
            raise _error(INTERNAL_ERROR, "Failed to call Legifrance API") from exc

        return CallToolResult(
            content=[TextContent(type="text", text=json.dumps(body, ensure_ascii=False))]
        )

    async def _search(self, token: str, query: str) -> Any:
        settings = self._settings
        url = settings.search_url

        logger.info(
            "Calling search endpoint",
            extra={
                "log_data": {
                    "event": "api_request",
                    "url": url,
                    "has_token": bool(token),
                }
            },
        )

        # httpx never raises on HTTP status; it is checked explicitly below.
        response = await self._http_client.post(
            url,
            json=build_search_request(query),
            headers={
                "Authorization": f"Bearer {token}",
                "X-Api-Key": settings.api_key.get_secret_value(),
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": settings.user_agent,
            },
        )

        if response.status_code != 200:
            body = _response_body(response)
            logger.error(
                "Search endpoint returned an error",
                extra={
                    "log_data": {
                        "event": "api_error",
                        "status": response.status_code,
                        "reason": response.reason_phrase,
                        "body": body,
                    }
                },
            )
            raise LegifranceAPIError(response.status_code, body)

        return response.json()


def _response_body(response: httpx.Response) -> Any:
    """Parsed JSON body when possible, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text
