"""Starlette app setup: health checks, REST bridge, logging."""

import logging
from typing import Any, Awaitable, Callable, Optional

from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .registry import Registry, ResourceNotFoundError, ResourceReadError, ToolNotFoundError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers that repeat what the client's own request hooks already log
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure logging with standard format.

    Args:
        level: Logging level (DEBUG, INFO, WARN, ERROR)

    Returns:
        Configured root logger
    """
    level = level.upper()
    if level == "WARN":
        level = "WARNING"
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger(__name__)


async def _json_body(request: Request):
    try:
        body = await request.json()
    except ValueError as e:
        return None, JSONResponse({"status": "error", "error": f"Invalid JSON: {e}"}, status_code=400)
    if not isinstance(body, dict):
        return None, JSONResponse({"status": "error", "error": "Body must be a JSON object"}, status_code=400)
    return body, None


def create_rest_bridge(registry: Registry, name: str) -> Callable[[Request], Awaitable[JSONResponse]]:
    """Create a REST endpoint that invokes tools with a plain POST.

    Usage:
        Route("/api/call", create_rest_bridge(registry, "sonarr-mcp"), methods=["POST"])
    """
    logger = logging.getLogger(f"{name}.rest_bridge")

    async def api_call(request: Request) -> JSONResponse:
        """Invoke a tool.

        Request body:
            {
                "tool": "tool_name",
                "arguments": {"arg1": "value1", ...}
            }

        Response:
            {
                "status": "success" | "error",
                "tool": "tool_name",
                "output": <tool result> | null,
                "error": <error message> | null
            }
        """
        body, error = await _json_body(request)
        if error:
            return error

        tool_name = body.get("tool")
        arguments = body.get("arguments") or {}

        if not tool_name:
            return JSONResponse({"status": "error", "error": "Missing 'tool' field"}, status_code=400)

        logger.info(f"REST bridge call: {tool_name}({arguments})")

        try:
            result = await registry.execute_tool(tool_name, arguments)
        except ToolNotFoundError as e:
            logger.warning(str(e))
            return JSONResponse({"status": "error", "tool": tool_name, "error": str(e)}, status_code=404)

        if result.is_error:
            return JSONResponse({"status": "error", "tool": tool_name, "error": result.text}, status_code=500)

        return JSONResponse({"status": "success", "tool": tool_name, "output": result.to_dict()})

    return api_call


def create_resource_bridge(registry: Registry, name: str) -> Callable[[Request], Awaitable[JSONResponse]]:
    """REST counterpart of create_rest_bridge for resources: POST {"uri": ...}."""
    logger = logging.getLogger(f"{name}.rest_bridge")

    async def api_resource(request: Request) -> JSONResponse:
        body, error = await _json_body(request)
        if error:
            return error

        uri = body.get("uri")
        if not uri:
            return JSONResponse({"status": "error", "error": "Missing 'uri' field"}, status_code=400)

        try:
            result = await registry.read_resource(uri)
        except ResourceNotFoundError as e:
            logger.warning(str(e))
            return JSONResponse({"status": "error", "uri": uri, "error": str(e)}, status_code=404)
        except ResourceReadError as e:
            logger.error(str(e))
            return JSONResponse({"status": "error", "uri": uri, "error": str(e)}, status_code=500)

        return JSONResponse({"status": "success", "uri": uri, "output": result.model_dump()})

    return api_resource


def create_starlette_app(
    mcp: FastMCP,
    registry: Registry,
    name: str,
    version: str = "1.0.0",
    health_check_fn: Optional[Callable[[], Awaitable[Any]]] = None,
    lifespan: Optional[Callable] = None,
) -> Starlette:
    """Create a Starlette app with MCP routes, health endpoints, and REST bridge.

    Args:
        mcp: FastMCP instance
        registry: Tool and resource registry behind the REST bridge
        name: Service name for health response
        version: Service version for health response
        health_check_fn: Optional async function for deep health checks
        lifespan: Optional lifespan factory; receives the MCP ASGI app and
            must enter its lifespan

    Returns:
        Configured Starlette application
    """

    async def health(request):
        """Health check endpoint."""
        result = {"status": "healthy", "service": name, "version": version}

        if health_check_fn:
            try:
                checks = await health_check_fn()
                if checks is not None:
                    result["checks"] = checks
            except Exception as e:
                result["status"] = "degraded"
                result["error"] = str(e)

        return JSONResponse(result)

    async def ready(request):
        """Readiness endpoint."""
        return JSONResponse({"ready": True})

    mcp_app = mcp.http_app(stateless_http=True)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/ready", ready, methods=["GET"]),
        Route("/api/call", create_rest_bridge(registry, name), methods=["POST"]),
        Route("/api/resource", create_resource_bridge(registry, name), methods=["POST"]),
        Mount("/", app=mcp_app),
    ]

    return Starlette(
        routes=routes,
        lifespan=lifespan(mcp_app) if lifespan else mcp_app.lifespan,
    )
