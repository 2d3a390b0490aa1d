from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from imageworkshop.rpc import INTERNAL_ERROR, Err, Ok, RpcError
from imageworkshop.router import McpRouter, shape_tool_result
from imageworkshop.tools.registry import TOOL_REGISTRY


class _FakeInvoker:
    def __init__(self, outcome: Any = None, exc: Exception | None = None) -> None:
        self.outcome = outcome if outcome is not None else Ok({"status": "ok"})
        self.exc = exc
        self.calls: list[tuple[str, dict]] = []

    async def invoke(self, tool, arguments):
        self.calls.append((tool.name, arguments))
        if self.exc is not None:
            raise self.exc
        return self.outcome


async def _post(router: McpRouter, req: Any) -> tuple[int, dict]:
    body = req if isinstance(req, str) else json.dumps(req)
    response = await router.handle_http("POST", body)
    return response.status_code, json.loads(response.body)


def _rpc(method: str, params: dict | None = None, req_id: Any = 1) -> dict:
    req: dict[str, Any] = {"jsonrpc": "2.0", "id": req_id, "method": method}
    if params is not None:
        req["params"] = params
    return req


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_options_preflight_skips_body_parsing() -> None:
    router = McpRouter(_FakeInvoker())
    response = await router.handle_http("OPTIONS", "this is not json")
    assert response.status_code == 200
    assert response.body == ""
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"


@pytest.mark.asyncio
async def test_get_is_method_not_allowed() -> None:
    router = McpRouter(_FakeInvoker())
    response = await router.handle_http("GET", None)
    assert response.status_code == 405
    body = json.loads(response.body)
    assert "Method not allowed" in body["error"]
    assert "jsonrpc" not in body


@pytest.mark.asyncio
async def test_invalid_json_is_parse_error_with_null_id() -> None:
    status, body = await _post(McpRouter(_FakeInvoker()), "not valid json")
    assert status == 400
    assert body["id"] is None
    assert body["error"]["code"] == -32700
    assert "Parse error" in body["error"]["message"]


@pytest.mark.asyncio
async def test_empty_body_is_invalid_request() -> None:
    router = McpRouter(_FakeInvoker())
    response = await router.handle_http("POST", None)
    body = json.loads(response.body)
    assert response.status_code == 200
    assert body["id"] is None
    assert body["error"]["code"] == -32600


@pytest.mark.asyncio
async def test_non_object_body_is_invalid_request() -> None:
    status, body = await _post(McpRouter(_FakeInvoker()), "[1, 2, 3]")
    assert status == 200
    assert body["error"]["code"] == -32600
    assert body["id"] is None


@pytest.mark.asyncio
async def test_unexpected_fault_is_500(monkeypatch: pytest.MonkeyPatch) -> None:
    router = McpRouter(_FakeInvoker())

    async def _boom(request: dict) -> dict:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(router, "handle_rpc", _boom)
    response = await router.handle_http("POST", json.dumps(_rpc("ping")))
    body = json.loads(response.body)
    assert response.status_code == 500
    assert body["error"] == {"code": -32603, "message": "Internal server error"}


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_wrong_version_echoes_id() -> None:
    status, body = await _post(
        McpRouter(_FakeInvoker()),
        {"jsonrpc": "1.0", "id": "abc", "method": "initialize"},
    )
    assert status == 200
    assert body["id"] == "abc"
    assert body["error"]["code"] == -32600
    assert "Invalid JSON-RPC version" in body["error"]["message"]
    assert "result" not in body


@pytest.mark.asyncio
@pytest.mark.parametrize("method", [None, "", 42])
async def test_missing_or_invalid_method(method: Any) -> None:
    req: dict[str, Any] = {"jsonrpc": "2.0", "id": 5}
    if method is not None:
        req["method"] = method
    _, body = await _post(McpRouter(_FakeInvoker()), req)
    assert body["id"] == 5
    assert body["error"]["code"] == -32600


@pytest.mark.asyncio
async def test_unknown_method() -> None:
    _, body = await _post(McpRouter(_FakeInvoker()), _rpc("foo/bar", req_id=9))
    assert body["jsonrpc"] == "2.0"
    assert body["id"] == 9
    assert body["error"]["code"] == -32601
    assert "foo/bar" in body["error"]["message"]


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_initialize_returns_server_info() -> None:
    _, body = await _post(
        McpRouter(_FakeInvoker()),
        _rpc("initialize", {
            "protocolVersion": "2024-11-05",
            "capabilities": {},
            "clientInfo": {"name": "test-client", "version": "1.0.0"},
        }),
    )
    result = body["result"]
    assert "error" not in body
    assert result["protocolVersion"] == "2025-06-18"
    assert result["capabilities"] == {"tools": {}}
    assert result["serverInfo"] == {"name": "image-workshop-mcp", "version": "1.0.0"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("method", "expected"),
    [
        ("initialized", {}),
        ("notifications/initialized", {}),
        ("ping", {}),
        ("resources/list", {"resources": []}),
        ("prompts/list", {"prompts": []}),
    ],
)
async def test_fixed_result_methods(method: str, expected: dict) -> None:
    invoker = _FakeInvoker()
    _, body = await _post(McpRouter(invoker), _rpc(method))
    assert "error" not in body
    assert body["result"] == expected
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_tools_list() -> None:
    _, body = await _post(McpRouter(_FakeInvoker()), _rpc("tools/list"))
    tools = body["result"]["tools"]
    assert len(tools) == len(TOOL_REGISTRY)
    for tool in tools:
        assert tool["name"]
        assert tool["description"]
        assert isinstance(tool["inputSchema"]["properties"], dict)
        assert set(tool) == {"name", "description", "inputSchema"}


@pytest.mark.asyncio
async def test_listing_is_idempotent() -> None:
    router = McpRouter(_FakeInvoker())
    first = (await router.handle_http("POST", json.dumps(_rpc("tools/list")))).body
    init_first = (await router.handle_http("POST", json.dumps(_rpc("initialize")))).body
    for _ in range(3):
        assert (await router.handle_http("POST", json.dumps(_rpc("tools/list")))).body == first
        assert (await router.handle_http("POST", json.dumps(_rpc("initialize")))).body == init_first


@pytest.mark.asyncio
async def test_tools_list_result_cannot_mutate_catalogue() -> None:
    router = McpRouter(_FakeInvoker())
    first = await router.handle_rpc(_rpc("tools/list"))
    first["result"]["tools"][0]["inputSchema"]["properties"].clear()
    second = await router.handle_rpc(_rpc("tools/list"))
    assert second["result"]["tools"][0]["inputSchema"]["properties"]


# ---------------------------------------------------------------------------
# tools/call
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tools_call_unknown_tool() -> None:
    invoker = _FakeInvoker()
    _, body = await _post(McpRouter(invoker), _rpc("tools/call", {"name": "nonexistent_tool"}))
    assert body["error"]["code"] == -32602
    assert "nonexistent_tool" in body["error"]["message"]
    assert invoker.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{}, {"name": ""}, {"name": 3}])
async def test_tools_call_missing_name(params: dict) -> None:
    _, body = await _post(McpRouter(_FakeInvoker()), _rpc("tools/call", params))
    assert body["error"]["code"] == -32602


@pytest.mark.asyncio
async def test_tools_call_rejects_non_object_arguments() -> None:
    _, body = await _post(
        McpRouter(_FakeInvoker()),
        _rpc("tools/call", {"name": "edit_erase", "arguments": ["a"]}),
    )
    assert body["error"]["code"] == -32602


@pytest.mark.asyncio
async def test_tools_call_image_result() -> None:
    invoker = _FakeInvoker(Ok({
        "image": "aGVsbG8=",
        "mime_type": "image/png",
        "seed": 42,
        "finish_reason": "SUCCESS",
    }))
    _, body = await _post(
        McpRouter(invoker),
        _rpc("tools/call", {"name": "txt2img_stable_diffusion", "arguments": {"prompt": "a cat"}}),
    )
    content = body["result"]["content"]
    assert invoker.calls == [("txt2img_stable_diffusion", {"prompt": "a cat"})]
    assert content[0] == {"type": "image", "data": "aGVsbG8=", "mimeType": "image/png"}
    assert content[1]["type"] == "text"
    assert json.loads(content[1]["text"]) == {"seed": 42, "finish_reason": "SUCCESS"}


@pytest.mark.asyncio
async def test_tools_call_defaults_arguments_to_empty_object() -> None:
    invoker = _FakeInvoker()
    await _post(McpRouter(invoker), _rpc("tools/call", {"name": "edit_erase"}))
    assert invoker.calls == [("edit_erase", {})]


@pytest.mark.asyncio
async def test_tools_call_backend_error_is_internal_error() -> None:
    invoker = _FakeInvoker(Err(RpcError(INTERNAL_ERROR, "prompt is required")))
    status, body = await _post(
        McpRouter(invoker),
        _rpc("tools/call", {"name": "txt2img_stable_diffusion", "arguments": {}}, req_id="x"),
    )
    assert status == 200
    assert body["id"] == "x"
    assert body["error"] == {"code": -32603, "message": "prompt is required"}


@pytest.mark.asyncio
async def test_tools_call_unexpected_exception_is_normalized() -> None:
    invoker = _FakeInvoker(exc=ValueError("socket closed"))
    status, body = await _post(McpRouter(invoker), _rpc("tools/call", {"name": "edit_erase"}))
    assert status == 200
    assert body["error"]["code"] == -32603
    assert body["error"]["message"] == "socket closed"


# ---------------------------------------------------------------------------
# Result shaping
# ---------------------------------------------------------------------------

def test_shape_image_with_model() -> None:
    result = shape_tool_result({
        "image": "abc",
        "mime_type": "image/webp",
        "seed": 7,
        "finish_reason": "SUCCESS",
        "model": "sdxl",
    })
    assert [block["type"] for block in result["content"]] == ["image", "text"]
    assert json.loads(result["content"][1]["text"]) == {
        "seed": 7,
        "finish_reason": "SUCCESS",
        "model": "sdxl",
    }


def test_shape_image_omits_null_metadata() -> None:
    result = shape_tool_result({
        "image": "abc",
        "mime_type": "image/png",
        "seed": None,
        "finish_reason": "SUCCESS",
        "model": None,
    })
    assert json.loads(result["content"][1]["text"]) == {"finish_reason": "SUCCESS"}


def test_shape_image_without_metadata_keeps_text_block() -> None:
    result = shape_tool_result({"image": "abc", "mime_type": "image/png"})
    assert len(result["content"]) == 2
    assert result["content"][0]["type"] == "image"
    assert json.loads(result["content"][1]["text"]) == {}


def test_shape_plain_payload_is_single_text_block() -> None:
    payload = {"regions": [{"x": 1, "y": 2}]}
    result = shape_tool_result(payload)
    assert len(result["content"]) == 1
    assert result["content"][0]["type"] == "text"
    assert result["content"][0]["text"] == json.dumps(payload, indent=2)


def test_shape_image_without_mime_type_is_text() -> None:
    result = shape_tool_result({"image": "abc"})
    assert [block["type"] for block in result["content"]] == ["text"]
