"""JSON-RPC 2.0 envelope helpers and the error taxonomy used by the router."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

T = TypeVar("T")


@dataclass(frozen=True)
class RpcError:
    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: RpcError


Result = Union[Ok[T], Err]


def fail(code: int, message: str, data: Any = None) -> Err:
    return Err(RpcError(code, message, data))


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

def _ok(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def _err(request_id: Any, error: RpcError) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}


def to_response(request_id: Any, outcome: Result[Any]) -> dict:
    if isinstance(outcome, Err):
        return _err(request_id, outcome.error)
    return _ok(request_id, outcome.value)
