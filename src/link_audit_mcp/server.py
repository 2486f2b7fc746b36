"""MCP server for link auditing."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from link_audit_mcp.admin.router import (
    api_config_get,
    api_config_update,
    api_stats,
    health_check,
)
from link_audit_mcp.audit.router import (
    api_article_audit,
    api_article_audit_batch,
    api_audit_script,
    register_audit_tools,
)

logger = logging.getLogger(__name__)

# Create MCP server with stateless mode enabled
# Stateless mode auto-creates sessions for unknown session IDs, making the server
# resilient to restarts and eliminating "No valid session ID" errors
mcp = FastMCP(
    "Link Audit MCP",
    instructions=(
        "A link auditing MCP server for adventure-life.com pages. Extracts the "
        "links of a page's intro and main content, categorizes them, validates "
        "them over HTTP and checks the availability of tours, cruises and ships."
    ),
    stateless_http=True,  # Accept requests without requiring initialize handshake
)

register_audit_tools(mcp)

# Audit API
mcp.custom_route("/api/v1/audit-script", methods=["POST"])(api_audit_script)
mcp.custom_route("/api/v1/article-audit", methods=["POST"])(api_article_audit)
mcp.custom_route("/api/v1/article-audit/batch", methods=["POST"])(api_article_audit_batch)

# Admin API
mcp.custom_route("/healthz", methods=["GET"])(health_check)
mcp.custom_route("/api/stats", methods=["GET"])(api_stats)
mcp.custom_route("/api/config", methods=["GET"])(api_config_get)
mcp.custom_route("/api/config", methods=["POST"])(api_config_update)


def run_server(transport: str = "streamable-http", host: str = "0.0.0.0", port: int = 8000) -> None:
    """Run the MCP server.

    Args:
        transport: Transport type ('streamable-http' or 'sse')
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8000)
    """
    # Configure host and port via settings
    mcp.settings.host = host
    mcp.settings.port = port

    logger.info(f"Starting Link Audit MCP server on {host}:{port} with {transport} transport")
    mcp.run(transport=transport)


if __name__ == "__main__":
    run_server()
