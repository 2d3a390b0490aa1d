from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
}
ALLOWED_METHODS = "POST, OPTIONS"


@dataclass
class HttpResponse:
    status_code: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=lambda: dict(CORS_HEADERS))

    def to_proxy_result(self) -> dict[str, Any]:
        """API Gateway / Lambda Function URL response shape."""
        return {"statusCode": self.status_code, "headers": self.headers, "body": self.body}


def preflight_response() -> HttpResponse:
    return HttpResponse(200, "", {**CORS_HEADERS, "Access-Control-Allow-Methods": ALLOWED_METHODS})
