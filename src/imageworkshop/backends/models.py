"""Request bodies accepted by the tool backends."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

OutputFormat = Literal["png", "jpeg", "webp"]


class ToolRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    seed: Optional[int] = None
    output_format: OutputFormat = "png"

    @field_validator("negative_prompt", "prompt", mode="after", check_fields=False)
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        # Required prompts are guarded by min_length before this runs.
        return value or None


# ---------------------------------------------------------------------------
# Text-to-image
# ---------------------------------------------------------------------------

class Txt2ImgRequest(ToolRequest):
    prompt: str = Field(min_length=1)
    negative_prompt: Optional[str] = None
    width: int = 1024
    height: int = 1024
    steps: int = Field(30, ge=10, le=50)
    cfg_scale: float = Field(7.0, ge=1, le=35)
    style_preset: Optional[str] = None

    @field_validator("width", "height")
    @classmethod
    def _dimension(cls, value: int, info: ValidationInfo) -> int:
        if value < 512 or value > 2048 or value % 64 != 0:
            raise ValueError(f"{info.field_name} must be a number between 512 and 2048, and a multiple of 64")
        return value


# ---------------------------------------------------------------------------
# Edit tools
# ---------------------------------------------------------------------------

class EditEraseRequest(ToolRequest):
    image: str = Field(min_length=1)
    mask: str = Field(min_length=1)
    grow_mask: int = Field(5, ge=0, le=100)


class EditInpaintRequest(ToolRequest):
    image: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    mask: str = Field(min_length=1)
    negative_prompt: Optional[str] = None
    grow_mask: int = Field(5, ge=0, le=100)


class EditOutpaintRequest(ToolRequest):
    image: str = Field(min_length=1)
    prompt: Optional[str] = None
    left: int = Field(0, ge=0, le=2000)
    right: int = Field(0, ge=0, le=2000)
    up: int = Field(0, ge=0, le=2000)
    down: int = Field(0, ge=0, le=2000)
    creativity: float = Field(0.5, ge=0, le=1)

    @model_validator(mode="after")
    def _some_direction(self) -> "EditOutpaintRequest":
        if not (self.left or self.right or self.up or self.down):
            raise ValueError("At least one direction (left, right, up, down) must be greater than 0")
        return self


class EditSearchAndReplaceRequest(ToolRequest):
    image: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    search_prompt: str = Field(min_length=1)
    negative_prompt: Optional[str] = None
    grow_mask: int = Field(3, ge=0, le=100)


class EditSearchAndRecolorRequest(ToolRequest):
    image: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    select_prompt: str = Field(min_length=1)
    negative_prompt: Optional[str] = None
    grow_mask: int = Field(3, ge=0, le=100)


class EditRemoveBackgroundRequest(ToolRequest):
    # Only png and webp carry transparency.
    output_format: Literal["png", "webp"] = "png"
    image: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Control tools
# ---------------------------------------------------------------------------

class ControlSketchRequest(ToolRequest):
    image: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    negative_prompt: Optional[str] = None
    control_strength: float = Field(0.7, ge=0, le=1)


class ControlStructureRequest(ControlSketchRequest):
    pass


class ControlStyleRequest(ToolRequest):
    image: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    negative_prompt: Optional[str] = None
    fidelity: float = Field(0.5, ge=0, le=1)


class StyleTransferRequest(ToolRequest):
    image: str = Field(min_length=1)
    style_image: str = Field(min_length=1)
    prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    fidelity: float = Field(0.5, ge=0, le=1)
