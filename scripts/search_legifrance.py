"""
CLI utility to run one Légifrance search without an MCP client.

Handy for checking credentials and looking at the raw search results the
searchLegifrance tool returns. It reads the same environment variables (or
.env file) as the server and goes through the same TokenProvider and
ToolDispatcher.

Usage examples:

    # Search case law mentioning both words
    uv run python -m scripts.search_legifrance "responsabilité médicale"

    # Only check that the OAuth exchange works
    uv run python -m scripts.search_legifrance --token-only

    # Compact output (exactly what the tool returns)
    uv run python -m scripts.search_legifrance "bail commercial" --raw

Logs are written to stderr, results to stdout, so the output can be piped:

    uv run python -m scripts.search_legifrance "bail" --raw | jq '.totalResultNumber'
"""

import argparse
import asyncio
import json
import sys

import httpx
from mcp.shared.exceptions import McpError

from src.auth import AuthenticationError, TokenProvider
from src.config import ConfigurationError, load_settings
from src.log import configure_logging
from src.tools import TOOL_NAME, ToolDispatcher


async def run(query: str | None, token_only: bool, raw: bool) -> int:
    settings = load_settings()

    async with httpx.AsyncClient(timeout=settings.http_timeout) as http_client:
        token_provider = TokenProvider(settings, http_client)

        if token_only:
            await token_provider.get_token()
            print("Authentication succeeded.")
            return 0

        dispatcher = ToolDispatcher(settings, token_provider, http_client)
        result = await dispatcher.call_tool(TOOL_NAME, {"query": query})

    text = result.content[0].text
    print(text if raw else json.dumps(json.loads(text), indent=2, ensure_ascii=False))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run one search against the Légifrance API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Search:
    %(prog)s "responsabilité médicale"

  Check credentials only:
    %(prog)s --token-only
        """,
    )

    parser.add_argument("query", nargs="?", help="Free-text search query")
    parser.add_argument(
        "--token-only",
        action="store_true",
        help="Only perform the OAuth exchange and report whether it succeeded",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the response exactly as the tool returns it (no pretty-printing)",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        help="Log level for the diagnostics written to stderr (default: warning)",
    )

    args = parser.parse_args()
    if args.query is None and not args.token_only:
        parser.error("a query is required unless --token-only is given")

    configure_logging(args.log_level)

    try:
        status = asyncio.run(run(args.query, args.token_only, args.raw))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc.message}", file=sys.stderr)
        status = 1
    except AuthenticationError as exc:
        print(f"Authentication failed: {exc.message}", file=sys.stderr)
        status = 1
    except McpError as exc:
        print(f"Search failed: {exc.error.message}", file=sys.stderr)
        status = 1

    sys.exit(status)


if __name__ == "__main__":
    main()
