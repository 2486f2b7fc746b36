"""Admin API routes for health, stats and runtime config."""

import json

from starlette.requests import Request
from starlette.responses import JSONResponse

from link_audit_mcp.admin.service import (
    get_current_config,
    get_stats,
    update_config,
)


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint for container orchestration.

    Returns:
        JSONResponse with status: healthy
    """
    return JSONResponse({"status": "healthy"})


async def api_stats(request: Request) -> JSONResponse:
    """Get server statistics and metrics as JSON.

    Returns:
        JSONResponse with request metrics and link gate counters
    """
    stats = get_stats()
    return JSONResponse(stats)


async def api_config_get(request: Request) -> JSONResponse:
    """Get current runtime configuration.

    Returns:
        JSONResponse with current config values
    """
    config = get_current_config()
    return JSONResponse(config)


async def api_config_update(request: Request) -> JSONResponse:
    """Update runtime configuration.

    Returns:
        JSONResponse with operation status
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return JSONResponse(
            {
                "status": "error",
                "message": f"Invalid JSON body: {e}"
            },
            status_code=400
        )

    config_updates = body.get("config") if isinstance(body, dict) else None
    if not isinstance(config_updates, dict):
        return JSONResponse(
            {
                "status": "error",
                "message": "Request body must contain a \"config\" object"
            },
            status_code=400
        )

    result = update_config(config_updates)
    return JSONResponse(result)
