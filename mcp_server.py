"""
Entry point for the YNAB MCP Server.

Usage:
    stdio mode (for Claude Desktop):
        python mcp_server.py

    HTTP mode (for web deployment):
        python mcp_server.py serve --transport http --port 8080
        uvicorn mcp_server:app --port 8080

    Using FastMCP CLI:
        fastmcp run mcp_server.py
"""
import sys

from ynab_mcp.cli import main
from ynab_mcp.config import Settings
from ynab_mcp.mcp.server import build_http_app, mcp

# HTTP app for uvicorn deployment; MCP_AUTH_TOKEN enables bearer auth
app = build_http_app(Settings())

if __name__ == "__main__":
    # Without arguments run in stdio mode for Claude Desktop
    sys.exit(main(sys.argv[1:] or ["serve"]))
