"""
Backend invocation strategies.

Tool backends are reached one of two ways:

* ``HttpToolInvoker``: POST the arguments to ``{base_url}{invocation_path}``.
  Used for local development, where sibling functions have no invocable
  identity and are served over HTTP instead.
* ``LambdaToolInvoker``: Lambda ``Invoke`` with an API Gateway shaped event,
  so a backend cannot tell which transport reached it.

Both return ``Ok(payload)`` or ``Err(RpcError(INTERNAL_ERROR, ...))``; neither
retries.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from .config import AppConfig, ConfigResolver
from .rpc import INTERNAL_ERROR, Ok, Result, fail
from .tools.registry import ToolDescriptor

log = logging.getLogger("image-workshop-mcp")


class ToolInvoker(Protocol):
    async def invoke(self, tool: ToolDescriptor, arguments: dict[str, Any]) -> Result[Any]:
        ...


def build_proxy_event(arguments: dict[str, Any]) -> dict[str, Any]:
    """The API Gateway proxy event a backend would get from direct HTTP."""
    return {
        "httpMethod": "POST",
        "body": json.dumps(arguments),
        "headers": {"Content-Type": "application/json"},
        "pathParameters": None,
        "queryStringParameters": None,
        "requestContext": {},
    }


# ---------------------------------------------------------------------------
# HTTP (local development)
# ---------------------------------------------------------------------------

class HttpToolInvoker:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def invoke(self, tool: ToolDescriptor, arguments: dict[str, Any]) -> Result[Any]:
        url = f"{self.base_url}{tool.invocation_path}"
        log.info("Invoking tool via HTTP: %s", url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=arguments)
        except httpx.HTTPError as exc:
            log.error("HTTP invocation of %s failed: %s", tool.name, exc)
            return fail(INTERNAL_ERROR, f"Internal error: {exc}")

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = payload.get("error") if isinstance(payload, dict) else None
            log.error("Tool %s returned HTTP %s", tool.name, response.status_code)
            return fail(INTERNAL_ERROR, message or f"HTTP {response.status_code}")
        if payload is None:
            return fail(INTERNAL_ERROR, "Internal error: tool backend returned invalid JSON")
        return Ok(payload)


# ---------------------------------------------------------------------------
# Lambda Invoke (production)
# ---------------------------------------------------------------------------

class LambdaToolInvoker:
    def __init__(self, lambda_client: Any, resolver: ConfigResolver) -> None:
        self.client = lambda_client
        self.resolver = resolver

    def function_name(self, tool: ToolDescriptor) -> str:
        return self.resolver.resolve(
            f"LAMBDA_{tool.backend_ref.upper()}",
            parameter_id=f"/image-workshop/lambda/{tool.backend_ref}",
            fallback=tool.backend_ref,
        )

    async def invoke(self, tool: ToolDescriptor, arguments: dict[str, Any]) -> Result[Any]:
        # boto3 blocks; keep the event loop free while the backend runs.
        return await asyncio.to_thread(self._invoke_sync, tool, arguments)

    def _invoke_sync(self, tool: ToolDescriptor, arguments: dict[str, Any]) -> Result[Any]:
        function_name = self.function_name(tool)
        log.info("Invoking tool via Lambda: %s", function_name)
        try:
            response = self.client.invoke(
                FunctionName=function_name,
                Payload=json.dumps(build_proxy_event(arguments)).encode("utf-8"),
            )
        except (BotoCoreError, ClientError) as exc:
            log.error("Lambda invoke of %s failed: %s", function_name, exc)
            return fail(INTERNAL_ERROR, f"Internal error: {exc}")

        stream = response.get("Payload")
        raw = stream.read() if stream is not None else b""
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")

        if response.get("FunctionError"):
            log.error("Lambda error: %s", raw)
            return fail(INTERNAL_ERROR, f"Tool execution failed: {raw or 'Unknown error'}")
        if not raw:
            return fail(INTERNAL_ERROR, "Empty response from tool Lambda")

        try:
            envelope = json.loads(raw)
            body = json.loads(envelope.get("body") or "{}")
            status = envelope.get("statusCode", 200)
        except (ValueError, TypeError, AttributeError) as exc:
            log.error("Malformed response from %s: %s", function_name, exc)
            return fail(INTERNAL_ERROR, f"Internal error: {exc}")

        if _is_error_status(status):
            message = body.get("error") if isinstance(body, dict) else None
            log.error("Tool %s returned status %s", tool.name, status)
            return fail(INTERNAL_ERROR, message or "Tool execution failed")
        return Ok(body)


def _is_error_status(status: Any) -> bool:
    # Proxy results may carry the status as a string; anything unreadable is a failure.
    try:
        return int(status) >= 400
    except (TypeError, ValueError):
        return True


def build_invoker(
    config: AppConfig,
    *,
    lambda_client: Any = None,
    resolver: ConfigResolver | None = None,
) -> ToolInvoker:
    """Pick the transport once, at process start, from configuration."""
    if config.local_api_base_url:
        return HttpToolInvoker(config.local_api_base_url, timeout=config.http_timeout)
    if lambda_client is None:
        lambda_client = boto3.client("lambda", region_name=config.aws_region)
    if resolver is None:
        resolver = ConfigResolver(region=config.aws_region)
    return LambdaToolInvoker(lambda_client, resolver)
