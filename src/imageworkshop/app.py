"""
image-workshop local server: runs the MCP router and every tool backend in
one FastAPI app, for development without Lambda.

  POST /mcp               - JSON-RPC endpoint (OPTIONS for CORS preflight)
  POST /tools/<tool-slug> - tool backends, same paths as API Gateway
  GET  /health            - health probe

Point ``LOCAL_API_BASE_URL`` at this server so tools/call reaches the
backends over HTTP:

    LOCAL_API_BASE_URL=http://localhost:3000 imageworkshop serve --port 3000
"""
from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .backends.service import ToolBackends
from .config import AppConfig, ConfigResolver, load_config
from .invokers import build_invoker
from .router import McpRouter
from .tools.registry import get_tool_by_path
from .transport import HttpResponse

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("image-workshop-server")

_ANY_METHOD = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _to_response(result: HttpResponse) -> Response:
    return Response(content=result.body, status_code=result.status_code, headers=result.headers)


def create_app(
    config: AppConfig | None = None,
    *,
    router: McpRouter | None = None,
    backends: ToolBackends | None = None,
) -> FastAPI:
    config = config or load_config()
    resolver = ConfigResolver(region=config.aws_region)
    router = router or McpRouter(build_invoker(config, resolver=resolver), config=config)
    backends = backends or ToolBackends(config, resolver)

    app = FastAPI(title=config.server_name, version=config.server_version)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log.error("Unhandled error [%s %s]: %s", request.method, request.url.path, exc, exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.api_route("/mcp", methods=_ANY_METHOD)
    async def mcp(request: Request) -> Response:
        body = await request.body()
        return _to_response(await router.handle_http(request.method, body))

    @app.api_route("/tools/{slug}", methods=["POST", "OPTIONS"])
    async def tool_backend(slug: str, request: Request) -> Response:
        tool = get_tool_by_path(f"/tools/{slug}", router.tools)
        if tool is None:
            return JSONResponse(status_code=404, content={"error": f"Unknown tool path: /tools/{slug}"})
        body = await request.body()
        result = await backends.handle(tool.name, request.method, body, str(uuid.uuid4()))
        return _to_response(result)

    @app.get("/health")
    async def health() -> dict:
        return {
            "ok": True,
            "tools": len(router.tools),
            "mode": "http" if config.local_api_base_url else "lambda",
        }

    return app


app = create_app()
