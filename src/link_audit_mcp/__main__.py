"""Main entry point for the link audit MCP server."""

from __future__ import annotations

import logging
import os
import sys

from link_audit_mcp.server import run_server


def main() -> None:
    """Main entry point."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Parse command line arguments
    transport = "streamable-http"
    host = "0.0.0.0"
    port = 8000

    if len(sys.argv) > 1:
        transport = sys.argv[1]
    if len(sys.argv) > 2:
        host = sys.argv[2]
    if len(sys.argv) > 3:
        port = int(sys.argv[3])

    run_server(transport=transport, host=host, port=port)


if __name__ == "__main__":
    main()
