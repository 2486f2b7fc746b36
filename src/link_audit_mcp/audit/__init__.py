"""Link audit operations.

The audit module follows a router -> service pattern:
- router.py: MCP tool definitions and HTTP endpoint handlers
- service.py: the fetch -> extract -> validate -> check pipeline
- aggregator.py: merging of check outcomes and statistics
"""

from link_audit_mcp.audit.router import (
    api_article_audit,
    api_article_audit_batch,
    api_audit_script,
    register_audit_tools,
)
from link_audit_mcp.audit.service import audit_batch, audit_page, extract_page

__all__ = [
    # Router functions
    "api_article_audit",
    "api_article_audit_batch",
    "api_audit_script",
    "register_audit_tools",
    # Service functions
    "audit_batch",
    "audit_page",
    "extract_page",
]
