"""
MCP input schemas for every image-workshop tool.

Each entry is the client-facing part of a tool: ``name``, ``description`` and
the JSON Schema of its arguments.  Deployment details (Lambda function, HTTP
path) are attached in :mod:`imageworkshop.tools.registry`.
"""
from __future__ import annotations

from typing import Any

_SEED: dict[str, Any] = {
    "type": "number",
    "description": "Random seed for reproducibility. If not provided, a random seed will be used.",
}

_OUTPUT_FORMAT: dict[str, Any] = {
    "type": "string",
    "description": 'Output image format (default: "png")',
    "enum": ["png", "jpeg", "webp"],
    "default": "png",
}


def _grow_mask(default: int, what: str = "mask") -> dict[str, Any]:
    return {
        "type": "number",
        "description": f"Number of pixels to grow the {what} by (default: {default}).",
        "default": default,
        "minimum": 0,
        "maximum": 100,
    }


def _unit_interval(description: str, default: float) -> dict[str, Any]:
    return {
        "type": "number",
        "description": description,
        "default": default,
        "minimum": 0,
        "maximum": 1,
    }


def _extend(side: str) -> dict[str, Any]:
    return {
        "type": "number",
        "description": f"Number of pixels to extend on the {side} (default: 0)",
        "default": 0,
        "minimum": 0,
        "maximum": 2000,
    }


# ---------------------------------------------------------------------------
# Text-to-image
# ---------------------------------------------------------------------------

TXT2IMG_STABLE_DIFFUSION: dict[str, Any] = {
    "name": "txt2img_stable_diffusion",
    "description": "Generate an image from a text prompt using Stable Diffusion (Stability AI)",
    "inputSchema": {
        "type": "object",
        "properties": {
            "prompt": {
                "type": "string",
                "description": "The text prompt describing what to generate. Be descriptive for best results.",
            },
            "negative_prompt": {
                "type": "string",
                "description": 'What to avoid in the generated image (e.g., "blurry, low quality, distorted")',
            },
            "width": {
                "type": "number",
                "description": "Image width in pixels (default: 1024). Must be a multiple of 64.",
                "default": 1024,
            },
            "height": {
                "type": "number",
                "description": "Image height in pixels (default: 1024). Must be a multiple of 64.",
                "default": 1024,
            },
            "steps": {
                "type": "number",
                "description": "Number of diffusion steps (default: 30). Higher = better quality but slower.",
                "default": 30,
                "minimum": 10,
                "maximum": 50,
            },
            "cfg_scale": {
                "type": "number",
                "description": "How closely to follow the prompt (default: 7.0). Higher = stricter adherence.",
                "default": 7.0,
                "minimum": 1,
                "maximum": 35,
            },
            "seed": _SEED,
            "style_preset": {
                "type": "string",
                "description": "Style preset to guide generation",
                "enum": [
                    "3d-model", "analog-film", "anime", "cinematic", "comic-book",
                    "digital-art", "enhance", "fantasy-art", "isometric", "line-art",
                    "low-poly", "modeling-compound", "neon-punk", "origami",
                    "photographic", "pixel-art", "tile-texture",
                ],
            },
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["prompt"],
    },
}

# ---------------------------------------------------------------------------
# Edit tools
# ---------------------------------------------------------------------------

EDIT_ERASE: dict[str, Any] = {
    "name": "edit_erase",
    "description": (
        "Erase objects from an image using Stability AI. Uses a mask to specify "
        "which areas to remove and intelligently fills them in."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {
                "type": "string",
                "description": "Base64 encoded image data or URL of the source image to edit",
            },
            "mask": {
                "type": "string",
                "description": (
                    "Base64 encoded mask image where white (255) indicates areas to erase "
                    "and black (0) indicates areas to keep"
                ),
            },
            "grow_mask": _grow_mask(5),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "mask"],
    },
}

EDIT_INPAINT: dict[str, Any] = {
    "name": "edit_inpaint",
    "description": (
        "Inpaint (fill in) masked regions of an image using Stability AI. Replace or "
        "modify specific areas with AI-generated content based on a text prompt."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {
                "type": "string",
                "description": "Base64 encoded image data or URL of the source image to edit",
            },
            "prompt": {
                "type": "string",
                "description": "Text prompt describing what to generate in the masked region",
            },
            "mask": {
                "type": "string",
                "description": (
                    "Base64 encoded mask image where white (255) indicates areas to inpaint "
                    "and black (0) indicates areas to keep"
                ),
            },
            "negative_prompt": {"type": "string", "description": "What to avoid in the generated content"},
            "grow_mask": _grow_mask(5),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "prompt", "mask"],
    },
}

EDIT_OUTPAINT: dict[str, Any] = {
    "name": "edit_outpaint",
    "description": (
        "Extend an image beyond its original boundaries using Stability AI. Expand the "
        "canvas in any direction with AI-generated content."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {
                "type": "string",
                "description": "Base64 encoded image data or URL of the source image to extend",
            },
            "prompt": {
                "type": "string",
                "description": "Text prompt describing what to generate in the extended areas (optional)",
            },
            "left": _extend("left side"),
            "right": _extend("right side"),
            "up": _extend("top"),
            "down": _extend("bottom"),
            "creativity": _unit_interval(
                "How creative the model should be (0-1, default: 0.5). Higher values = more creative.",
                0.5,
            ),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image"],
    },
}

EDIT_SEARCH_AND_REPLACE: dict[str, Any] = {
    "name": "edit_search_and_replace",
    "description": (
        "Search for and replace objects in an image using Stability AI. Find specific "
        "objects and replace them with something else based on text prompts."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {"type": "string", "description": "Base64 encoded image data or URL of the source image"},
            "prompt": {
                "type": "string",
                "description": "Text prompt describing what to generate as the replacement",
            },
            "search_prompt": {
                "type": "string",
                "description": "Text prompt describing the object to search for and replace",
            },
            "negative_prompt": {"type": "string", "description": "What to avoid in the generated replacement"},
            "grow_mask": _grow_mask(3, "detected mask"),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "prompt", "search_prompt"],
    },
}

EDIT_SEARCH_AND_RECOLOR: dict[str, Any] = {
    "name": "edit_search_and_recolor",
    "description": (
        "Search for and recolor objects in an image using Stability AI. Find specific "
        "objects and change their color based on text prompts."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {"type": "string", "description": "Base64 encoded image data or URL of the source image"},
            "prompt": {
                "type": "string",
                "description": 'Text prompt describing the new color (e.g., "bright red", "deep blue")',
            },
            "select_prompt": {
                "type": "string",
                "description": "Text prompt describing the object to select and recolor",
            },
            "negative_prompt": {"type": "string", "description": "What to avoid in the recolored result"},
            "grow_mask": _grow_mask(3, "detected mask"),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "prompt", "select_prompt"],
    },
}

EDIT_REMOVE_BACKGROUND: dict[str, Any] = {
    "name": "edit_remove_background",
    "description": (
        "Remove the background from an image using Stability AI. Isolates the foreground "
        "subject and returns an image with transparent background."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {"type": "string", "description": "Base64 encoded image data or URL of the source image"},
            "output_format": {
                "type": "string",
                "description": 'Output image format (default: "png"). Note: use "png" for transparency support.',
                "enum": ["png", "webp"],
                "default": "png",
            },
        },
        "required": ["image"],
    },
}

# ---------------------------------------------------------------------------
# Control tools
# ---------------------------------------------------------------------------

CONTROL_SKETCH: dict[str, Any] = {
    "name": "control_sketch",
    "description": (
        "Generate an image from a sketch using Stability AI. Transform rough sketches or "
        "line drawings into detailed images based on a text prompt."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {"type": "string", "description": "Base64 encoded sketch/line drawing image"},
            "prompt": {"type": "string", "description": "Text prompt describing what to generate from the sketch"},
            "negative_prompt": {"type": "string", "description": "What to avoid in the generated image"},
            "control_strength": _unit_interval(
                "How closely to follow the sketch (0-1, default: 0.7). Higher = more faithful to sketch.",
                0.7,
            ),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "prompt"],
    },
}

CONTROL_STRUCTURE: dict[str, Any] = {
    "name": "control_structure",
    "description": (
        "Generate an image following the structure of a reference image using Stability AI. "
        "Maintains the composition and layout while generating new content."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {
                "type": "string",
                "description": "Base64 encoded reference image that defines the structure",
            },
            "prompt": {
                "type": "string",
                "description": "Text prompt describing what to generate while following the structure",
            },
            "negative_prompt": {"type": "string", "description": "What to avoid in the generated image"},
            "control_strength": _unit_interval(
                "How closely to follow the structure (0-1, default: 0.7). Higher = more faithful to structure.",
                0.7,
            ),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "prompt"],
    },
}

CONTROL_STYLE: dict[str, Any] = {
    "name": "control_style",
    "description": (
        "Generate an image in the style of a reference image using Stability AI. Apply the "
        "artistic style, colors, and textures from a reference to new content."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {"type": "string", "description": "Base64 encoded reference image that defines the style"},
            "prompt": {
                "type": "string",
                "description": "Text prompt describing what to generate in the reference style",
            },
            "negative_prompt": {"type": "string", "description": "What to avoid in the generated image"},
            "fidelity": _unit_interval(
                "How closely to match the style (0-1, default: 0.5). Higher = more faithful to style.",
                0.5,
            ),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "prompt"],
    },
}

# ---------------------------------------------------------------------------
# Style transfer
# ---------------------------------------------------------------------------

STYLE_TRANSFER: dict[str, Any] = {
    "name": "style_transfer",
    "description": (
        "Transfer the artistic style from a style reference image to a content image using "
        "Stability AI. Combines the content of one image with the style of another."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "image": {
                "type": "string",
                "description": "Base64 encoded content image (the image whose content to keep)",
            },
            "style_image": {
                "type": "string",
                "description": "Base64 encoded style reference image (the image whose style to transfer)",
            },
            "prompt": {"type": "string", "description": "Optional text prompt to guide the style transfer"},
            "negative_prompt": {"type": "string", "description": "What to avoid in the generated image"},
            "fidelity": _unit_interval(
                "Balance between content and style (0-1, default: 0.5). Lower = more content "
                "preservation, higher = more style transfer.",
                0.5,
            ),
            "seed": _SEED,
            "output_format": _OUTPUT_FORMAT,
        },
        "required": ["image", "style_image"],
    },
}
