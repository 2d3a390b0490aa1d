"""
MCP router: JSON-RPC 2.0 dispatch for the image-workshop tool catalogue.

One inbound envelope in, one response envelope out.  ``handle_http`` is the
transport wrapper shared by the Lambda entry point and the local FastAPI
server: it deals with CORS preflight, the POST-only rule and body decoding,
then hands a decoded envelope to ``handle_rpc``.

Protocol errors never change the transport status (always 200, error in the
body).  Non-200 statuses are reserved for the preflight (200 without a body),
wrong verbs (405), undecodable bodies (400) and unexpected faults (500).
"""
from __future__ import annotations

import copy
import json
import logging
from typing import Any, Awaitable, Callable, Iterable

from .config import AppConfig
from .invokers import ToolInvoker
from .rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    Err,
    Ok,
    Result,
    RpcError,
    _err,
    fail,
    to_response,
)
from .tools.registry import TOOL_REGISTRY, ToolDescriptor, get_tool_by_name
from .transport import HttpResponse, preflight_response

log = logging.getLogger("image-workshop-mcp")

# Generation metadata copied into the text block that follows an image.
# Keys whose value is None are left out rather than serialised as null.
_IMAGE_METADATA_KEYS = ("seed", "finish_reason", "model")


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------

def _text(s: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": s}]


def shape_tool_result(payload: Any) -> dict[str, Any]:
    """Turn a backend payload into an MCP ``tools/call`` result."""
    if isinstance(payload, dict) and payload.get("image") and payload.get("mime_type"):
        metadata = {key: payload[key] for key in _IMAGE_METADATA_KEYS if payload.get(key) is not None}
        return {
            "content": [
                {"type": "image", "data": payload["image"], "mimeType": payload["mime_type"]},
                *_text(json.dumps(metadata, indent=2)),
            ]
        }
    return {"content": _text(json.dumps(payload, indent=2))}


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

Handler = Callable[[dict[str, Any]], Awaitable[Result[Any]]]


class McpRouter:
    def __init__(
        self,
        invoker: ToolInvoker,
        *,
        config: AppConfig | None = None,
        tools: Iterable[ToolDescriptor] = TOOL_REGISTRY,
    ) -> None:
        config = config or AppConfig()
        self.invoker = invoker
        self.tools = tuple(tools)
        self.protocol_version = config.protocol_version
        self.server_info = {"name": config.server_name, "version": config.server_version}
        self._methods: dict[str, Handler] = {
            "initialize": self._initialize,
            "initialized": self._acknowledge,
            "notifications/initialized": self._acknowledge,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "resources/list": self._resources_list,
            "prompts/list": self._prompts_list,
            "ping": self._acknowledge,
        }

    # -- transport ----------------------------------------------------------

    async def handle_http(self, http_method: str | None, body: str | bytes | None) -> HttpResponse:
        verb = (http_method or "").upper()
        if verb == "OPTIONS":
            return preflight_response()
        if verb != "POST":
            return HttpResponse(405, json.dumps({"error": "Method not allowed. Use POST."}))

        try:
            if not body:
                return HttpResponse(200, json.dumps(_err(None, RpcError(INVALID_REQUEST, "Empty request body"))))
            try:
                request = json.loads(body)
            except ValueError:
                return HttpResponse(
                    400, json.dumps(_err(None, RpcError(PARSE_ERROR, "Parse error: Invalid JSON")))
                )
            if not isinstance(request, dict):
                return HttpResponse(
                    200, json.dumps(_err(None, RpcError(INVALID_REQUEST, "Request must be a JSON object")))
                )
            response = await self.handle_rpc(request)
            return HttpResponse(200, json.dumps(response))
        except Exception:
            log.exception("Unhandled error while serving MCP request")
            return HttpResponse(
                500, json.dumps(_err(None, RpcError(INTERNAL_ERROR, "Internal server error")))
            )

    # -- protocol -----------------------------------------------------------

    async def handle_rpc(self, request: dict[str, Any]) -> dict:
        """Validate framing, dispatch, and build the response envelope."""
        req_id = request.get("id")
        if request.get("jsonrpc") != JSONRPC_VERSION:
            return _err(req_id, RpcError(INVALID_REQUEST, "Invalid JSON-RPC version"))
        method = request.get("method")
        if not isinstance(method, str) or not method:
            return _err(req_id, RpcError(INVALID_REQUEST, "Missing or invalid method"))

        params = request.get("params")
        if not isinstance(params, dict):
            params = {}
        log.info("MCP request: %s", method)

        handler = self._methods.get(method)
        try:
            if handler is None:
                outcome: Result[Any] = fail(METHOD_NOT_FOUND, f"Method not found: {method}")
            else:
                outcome = await handler(params)
        except Exception as exc:
            log.error("Error handling %s: %s", method, exc, exc_info=True)
            outcome = fail(INTERNAL_ERROR, str(exc) or "Internal error")
        return to_response(req_id, outcome)

    # -- methods ------------------------------------------------------------

    async def _initialize(self, params: dict[str, Any]) -> Result[Any]:
        return Ok({
            "protocolVersion": self.protocol_version,
            "capabilities": {"tools": {}},
            "serverInfo": dict(self.server_info),
        })

    async def _acknowledge(self, params: dict[str, Any]) -> Result[Any]:
        return Ok({})

    async def _tools_list(self, params: dict[str, Any]) -> Result[Any]:
        return Ok({"tools": [tool.definition() for tool in self.tools]})

    async def _resources_list(self, params: dict[str, Any]) -> Result[Any]:
        return Ok({"resources": []})

    async def _prompts_list(self, params: dict[str, Any]) -> Result[Any]:
        return Ok({"prompts": []})

    async def _tools_call(self, params: dict[str, Any]) -> Result[Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            return fail(INVALID_PARAMS, "Missing or invalid tool name")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return fail(INVALID_PARAMS, "Tool arguments must be an object")

        tool = get_tool_by_name(name, self.tools)
        if tool is None:
            return fail(INVALID_PARAMS, f"Unknown tool: {name}")

        log.info("Invoking tool: %s -> %s", tool.name, tool.backend_ref)
        outcome = await self.invoker.invoke(tool, copy.deepcopy(arguments))
        if isinstance(outcome, Err):
            return outcome
        return Ok(shape_tool_result(outcome.value))
