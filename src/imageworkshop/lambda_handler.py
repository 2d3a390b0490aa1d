"""
Lambda entry point for the MCP router (API Gateway or Function URL).

The router and its invoker are built once per execution context, at import.
Set ``LOCAL_API_BASE_URL`` to route tool calls over HTTP instead of Lambda
Invoke (SAM local, or the FastAPI dev server).
"""
from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any

from .config import load_config
from .invokers import build_invoker
from .router import McpRouter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("image-workshop-mcp")

_CONFIG = load_config()
ROUTER = McpRouter(build_invoker(_CONFIG), config=_CONFIG)


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    log.info("RequestId: %s", getattr(context, "aws_request_id", None))
    method = event.get("httpMethod") or (
        (event.get("requestContext") or {}).get("http", {}).get("method")
    )
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8", errors="replace")
    response = asyncio.run(ROUTER.handle_http(method, body))
    return response.to_proxy_result()
