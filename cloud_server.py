#!/usr/bin/env python3
"""FatSecret Nutrition MCP Server for cloud deployment (SSE transport).

Works with Railway, Render, or any platform that sets PORT env var.
"""

import os

# FastMCP reads FASTMCP_-prefixed settings when the server module is imported
os.environ.setdefault("FASTMCP_HOST", "0.0.0.0")
if "PORT" in os.environ:
    os.environ["FASTMCP_PORT"] = os.environ["PORT"]

from fatsecret_nutrition.config import configure_logging, get_settings
from fatsecret_nutrition.server import mcp


def main() -> None:
    """Serve the nutrition tools plus /health and / over SSE."""
    configure_logging(get_settings().log_level)
    mcp.run(transport="sse")


if __name__ == "__main__":
    main()
