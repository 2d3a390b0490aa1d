"""
Lambda entry points for the tool backends, one per catalogue tool.

Deploy each function with handler ``imageworkshop.backends.handlers.<tool>``,
e.g. ``imageworkshop.backends.handlers.edit_erase``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..config import ConfigResolver, load_config
from .service import ToolBackends

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("image-workshop-tools")

_CONFIG = load_config()
BACKENDS = ToolBackends(_CONFIG, ConfigResolver(region=_CONFIG.aws_region))


def make_lambda_handler(tool_name: str) -> Callable[[dict[str, Any], Any], dict[str, Any]]:
    def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
        request_id = getattr(context, "aws_request_id", None)
        log.info("RequestId: %s", request_id)
        response = asyncio.run(
            BACKENDS.handle(tool_name, event.get("httpMethod"), event.get("body"), request_id)
        )
        return response.to_proxy_result()

    handler.__name__ = tool_name
    return handler


txt2img_stable_diffusion = make_lambda_handler("txt2img_stable_diffusion")
edit_erase = make_lambda_handler("edit_erase")
edit_inpaint = make_lambda_handler("edit_inpaint")
edit_outpaint = make_lambda_handler("edit_outpaint")
edit_search_and_replace = make_lambda_handler("edit_search_and_replace")
edit_search_and_recolor = make_lambda_handler("edit_search_and_recolor")
edit_remove_background = make_lambda_handler("edit_remove_background")
control_sketch = make_lambda_handler("control_sketch")
control_structure = make_lambda_handler("control_structure")
control_style = make_lambda_handler("control_style")
style_transfer = make_lambda_handler("style_transfer")
