"""
Tool backends: one Stability AI operation per catalogue tool.

Every backend receives the same API Gateway shaped request whether it was
reached over HTTP (local server) or Lambda Invoke, validates the JSON body,
calls Stability AI and answers with::

    {"image": <base64>, "mime_type": ..., "seed": ..., "finish_reason": ...}

Errors come back as ``{"error": message, "requestId": id}`` with 400 for bad
input, 502 for Stability AI failures and 500 for anything else.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from ..config import AppConfig, ConfigError, ConfigResolver
from ..stability import StabilityClient, content_type_for
from ..tools.errors import ImageInputError, StabilityApiError, ToolRequestError
from ..transport import HttpResponse, preflight_response
from . import models

log = logging.getLogger("image-workshop-tools")


class BackendRequestError(ToolRequestError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400)


def parse_request(model: type[models.ToolRequest], body: str | bytes | None) -> models.ToolRequest:
    if not body:
        raise BackendRequestError("Request body is required")
    try:
        parsed = json.loads(body)
    except ValueError as exc:
        raise BackendRequestError(f"Request body must be valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise BackendRequestError("Request body must be a JSON object")
    try:
        return model.model_validate(parsed)
    except ValidationError as exc:
        raise BackendRequestError(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()))
        msg = error.get("msg", "invalid value").removeprefix("Value error, ")
        if error.get("type") == "missing":
            msg = "is required"
        parts.append(f"{loc} {msg}" if loc else msg)
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StabilityEdit:
    """A v2beta multipart operation: image inputs as files, the rest as form fields."""

    endpoint: str
    request_model: type[models.ToolRequest]
    file_fields: tuple[str, ...]
    form_fields: tuple[str, ...]
    defaults: Mapping[str, Any] = field(default_factory=dict)

    async def run(
        self, request: models.ToolRequest, client: StabilityClient, resolver: ConfigResolver
    ) -> dict[str, Any]:
        files = {
            name: await client.load_image(getattr(request, name), f"{name}.png")
            for name in self.file_fields
        }
        form = {name: getattr(request, name) for name in self.form_fields}
        for key, value in self.defaults.items():
            if form.get(key) is None:
                form[key] = value
        form["seed"] = request.seed
        form["output_format"] = request.output_format
        image = await client.generate(self.endpoint, form, files, request.output_format)
        log.info("%s complete. Seed: %s", self.endpoint, image.seed)
        return image.to_tool_response()


@dataclass(frozen=True)
class TextToImage:
    request_model: type[models.ToolRequest] = models.Txt2ImgRequest

    async def run(
        self, request: models.Txt2ImgRequest, client: StabilityClient, resolver: ConfigResolver
    ) -> dict[str, Any]:
        model = resolver.resolve_known("STABILITY_MODEL")
        log.info("Using model: %s", model)
        log.info("Dimensions: %sx%s, Steps: %s", request.width, request.height, request.steps)

        text_prompts = [{"text": request.prompt, "weight": 1.0}]
        if request.negative_prompt:
            text_prompts.append({"text": request.negative_prompt, "weight": -1.0})
        payload: dict[str, Any] = {
            "text_prompts": text_prompts,
            "cfg_scale": request.cfg_scale,
            "height": request.height,
            "width": request.width,
            "steps": request.steps,
            "samples": 1,
        }
        if request.seed is not None:
            payload["seed"] = request.seed
        if request.style_preset:
            payload["style_preset"] = request.style_preset

        artifact = await client.text_to_image(model, payload)
        log.info("Generation complete. Seed: %s, Finish reason: %s", artifact.get("seed"), artifact.get("finishReason"))
        return {
            "image": artifact.get("base64", ""),
            "mime_type": content_type_for(request.output_format),
            "seed": artifact.get("seed"),
            "finish_reason": artifact.get("finishReason"),
            "model": model,
        }


_PROMPTS = ("prompt", "negative_prompt")

OPERATIONS: dict[str, StabilityEdit | TextToImage] = {
    "txt2img_stable_diffusion": TextToImage(),
    "edit_erase": StabilityEdit(
        "/v2beta/stable-image/edit/erase",
        models.EditEraseRequest,
        ("image", "mask"),
        ("grow_mask",),
    ),
    "edit_inpaint": StabilityEdit(
        "/v2beta/stable-image/edit/inpaint",
        models.EditInpaintRequest,
        ("image", "mask"),
        (*_PROMPTS, "grow_mask"),
    ),
    "edit_outpaint": StabilityEdit(
        "/v2beta/stable-image/edit/outpaint",
        models.EditOutpaintRequest,
        ("image",),
        ("prompt", "left", "right", "up", "down", "creativity"),
    ),
    "edit_search_and_replace": StabilityEdit(
        "/v2beta/stable-image/edit/search-and-replace",
        models.EditSearchAndReplaceRequest,
        ("image",),
        ("prompt", "search_prompt", "negative_prompt", "grow_mask"),
    ),
    "edit_search_and_recolor": StabilityEdit(
        "/v2beta/stable-image/edit/search-and-recolor",
        models.EditSearchAndRecolorRequest,
        ("image",),
        ("prompt", "select_prompt", "negative_prompt", "grow_mask"),
    ),
    "edit_remove_background": StabilityEdit(
        "/v2beta/stable-image/edit/remove-background",
        models.EditRemoveBackgroundRequest,
        ("image",),
        (),
    ),
    "control_sketch": StabilityEdit(
        "/v2beta/stable-image/control/sketch",
        models.ControlSketchRequest,
        ("image",),
        (*_PROMPTS, "control_strength"),
    ),
    "control_structure": StabilityEdit(
        "/v2beta/stable-image/control/structure",
        models.ControlStructureRequest,
        ("image",),
        (*_PROMPTS, "control_strength"),
    ),
    "control_style": StabilityEdit(
        "/v2beta/stable-image/control/style",
        models.ControlStyleRequest,
        ("image",),
        (*_PROMPTS, "fidelity"),
    ),
    "style_transfer": StabilityEdit(
        "/v2beta/stable-image/control/style",
        models.StyleTransferRequest,
        ("image", "style_image"),
        (*_PROMPTS, "fidelity"),
        defaults={"prompt": "transfer the style"},
    ),
}


# ---------------------------------------------------------------------------
# Request handling
# ---------------------------------------------------------------------------

class ToolBackends:
    def __init__(
        self,
        config: AppConfig,
        resolver: ConfigResolver,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.resolver = resolver
        self._transport = transport

    def _client(self, api_key: str) -> StabilityClient:
        return StabilityClient(
            api_key,
            base_url=self.config.stability_api_host,
            timeout=self.config.http_timeout,
            transport=self._transport,
        )

    async def run(self, tool_name: str, body: str | bytes | None) -> dict[str, Any]:
        operation = OPERATIONS.get(tool_name)
        if operation is None:
            raise LookupError(f"Unknown tool backend: {tool_name}")
        request = parse_request(operation.request_model, body)
        api_key = self.resolver.resolve_known("STABILITY_API_KEY", required=True)
        return await operation.run(request, self._client(api_key), self.resolver)

    async def handle(
        self,
        tool_name: str,
        http_method: str | None,
        body: str | bytes | None,
        request_id: str | None = None,
    ) -> HttpResponse:
        if (http_method or "").upper() == "OPTIONS":
            return preflight_response()
        try:
            result = await self.run(tool_name, body)
            return HttpResponse(200, json.dumps(result))
        except (BackendRequestError, ImageInputError) as exc:
            status, message = 400, str(exc)
        except StabilityApiError as exc:
            status, message = 502, str(exc)
        except ConfigError as exc:
            status, message = 500, str(exc)
        except Exception as exc:
            log.error("Unhandled error in %s: %s", tool_name, exc, exc_info=True)
            status, message = 500, str(exc) or "Unknown error"
        log.error("%s failed (%s): %s", tool_name, status, message)
        return HttpResponse(status, json.dumps({"error": message, "requestId": request_id}))
