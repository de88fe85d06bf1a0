from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

CANONICAL_MODEL_ID = "@cf/black-forest-labs/flux-2-dev"
HEALTH_MODEL_NAME = "flux-2-dev"
MAX_REFERENCE_IMAGES = 4


class GenerationMode(str, Enum):
    BASIC = "basic"
    MULTI_REFERENCE = "multi_reference"
    JSON_PROMPT = "json_prompt"
    STYLE_TRANSFER = "style_transfer"
    PRODUCT_SHOT = "product_shot"

    @property
    def path(self) -> str:
        return MODE_PATHS[self]


MODE_PATHS: dict[GenerationMode, str] = {
    GenerationMode.BASIC: "/api/generate",
    GenerationMode.MULTI_REFERENCE: "/api/multi-reference",
    GenerationMode.JSON_PROMPT: "/api/json-prompt",
    GenerationMode.STYLE_TRANSFER: "/api/style-transfer",
    GenerationMode.PRODUCT_SHOT: "/api/product-shot",
}


@dataclass(frozen=True, slots=True)
class ModeDefaults:
    steps: int
    width: int
    height: int
    guidance: float | None


MODE_DEFAULTS: dict[GenerationMode, ModeDefaults] = {
    GenerationMode.BASIC: ModeDefaults(steps=20, width=1024, height=1024, guidance=7.5),
    GenerationMode.MULTI_REFERENCE: ModeDefaults(
        steps=25, width=1024, height=1024, guidance=None
    ),
    GenerationMode.JSON_PROMPT: ModeDefaults(
        steps=30, width=1024, height=1024, guidance=7.5
    ),
    GenerationMode.STYLE_TRANSFER: ModeDefaults(
        steps=25, width=1024, height=1024, guidance=None
    ),
    GenerationMode.PRODUCT_SHOT: ModeDefaults(
        steps=30, width=1024, height=1024, guidance=8.0
    ),
}


@dataclass(frozen=True, slots=True)
class ImageBlob:
    data: bytes
    content_type: str | None = None
    filename: str | None = None


@dataclass(frozen=True, slots=True)
class ReferenceImage:
    slot: int
    image: ImageBlob


@dataclass(slots=True)
class BasicRequest:
    prompt: str
    steps: int | None = None
    width: int | None = None
    height: int | None = None
    guidance: float | None = None

    mode = GenerationMode.BASIC


@dataclass(slots=True)
class MultiReferenceRequest:
    prompt: str
    reference_images: tuple[ReferenceImage, ...]
    steps: int | None = None
    width: int | None = None
    height: int | None = None

    mode = GenerationMode.MULTI_REFERENCE


@dataclass(slots=True)
class JsonPromptRequest:
    structured_prompt: Any
    steps: int | None = None
    width: int | None = None
    height: int | None = None
    guidance: float | None = None

    mode = GenerationMode.JSON_PROMPT


@dataclass(slots=True)
class StyleTransferRequest:
    style_image: ImageBlob
    content_image: ImageBlob

    mode = GenerationMode.STYLE_TRANSFER


@dataclass(slots=True)
class ProductShotRequest:
    product_image: ImageBlob
    environment: str | None = None

    mode = GenerationMode.PRODUCT_SHOT


GenerationRequest = Union[
    BasicRequest,
    MultiReferenceRequest,
    JsonPromptRequest,
    StyleTransferRequest,
    ProductShotRequest,
]


@dataclass(frozen=True, slots=True)
class EngineRequest:
    prompt_text: str
    images: tuple[ReferenceImage, ...]
    steps: int
    width: int
    height: int
    guidance: float | None = None

    def __post_init__(self) -> None:
        if len(self.images) > MAX_REFERENCE_IMAGES:
            raise ValueError(
                f"At most {MAX_REFERENCE_IMAGES} reference images are supported, "
                f"got {len(self.images)}."
            )


@dataclass(frozen=True, slots=True)
class GenerationSuccess:
    image: bytes


@dataclass(frozen=True, slots=True)
class GenerationFailure:
    message: str
    cause: BaseException


GenerationOutcome = Union[GenerationSuccess, GenerationFailure]
