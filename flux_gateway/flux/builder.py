from __future__ import annotations

import json

from flux_gateway.core.types import (
    MODE_DEFAULTS,
    BasicRequest,
    EngineRequest,
    GenerationRequest,
    JsonPromptRequest,
    MultiReferenceRequest,
    ProductShotRequest,
    ReferenceImage,
    StyleTransferRequest,
)

STYLE_TRANSFER_PROMPT = "take the subject of image 1 and style it like image 0"
DEFAULT_PRODUCT_ENVIRONMENT = "on a modern desk with soft lighting"
PRODUCT_SHOT_TEMPLATE = (
    "professional product photography, {environment}, high quality, studio lighting"
)


def build_engine_request(request: GenerationRequest) -> EngineRequest:
    if isinstance(request, BasicRequest):
        return _build_basic(request)

    if isinstance(request, MultiReferenceRequest):
        return _build_multi_reference(request)

    if isinstance(request, JsonPromptRequest):
        return _build_json_prompt(request)

    if isinstance(request, StyleTransferRequest):
        return _build_style_transfer(request)

    if isinstance(request, ProductShotRequest):
        return _build_product_shot(request)

    raise TypeError(f"Unsupported generation request: {type(request).__name__}")


def product_shot_prompt(environment: str | None) -> str:
    return PRODUCT_SHOT_TEMPLATE.format(
        environment=environment or DEFAULT_PRODUCT_ENVIRONMENT
    )


def _build_basic(request: BasicRequest) -> EngineRequest:
    defaults = MODE_DEFAULTS[request.mode]
    return EngineRequest(
        prompt_text=request.prompt,
        images=(),
        steps=_or_default(request.steps, defaults.steps),
        width=_or_default(request.width, defaults.width),
        height=_or_default(request.height, defaults.height),
        guidance=_or_default(request.guidance, defaults.guidance),
    )


def _build_multi_reference(request: MultiReferenceRequest) -> EngineRequest:
    defaults = MODE_DEFAULTS[request.mode]
    return EngineRequest(
        prompt_text=request.prompt,
        images=tuple(sorted(request.reference_images, key=lambda ref: ref.slot)),
        steps=_or_default(request.steps, defaults.steps),
        width=_or_default(request.width, defaults.width),
        height=_or_default(request.height, defaults.height),
        guidance=defaults.guidance,
    )


def _build_json_prompt(request: JsonPromptRequest) -> EngineRequest:
    defaults = MODE_DEFAULTS[request.mode]
    return EngineRequest(
        prompt_text=json.dumps(
            request.structured_prompt,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ),
        images=(),
        steps=_or_default(request.steps, defaults.steps),
        width=_or_default(request.width, defaults.width),
        height=_or_default(request.height, defaults.height),
        guidance=_or_default(request.guidance, defaults.guidance),
    )


def _build_style_transfer(request: StyleTransferRequest) -> EngineRequest:
    defaults = MODE_DEFAULTS[request.mode]
    # The fixed prompt refers to these slots by number.
    return EngineRequest(
        prompt_text=STYLE_TRANSFER_PROMPT,
        images=(
            ReferenceImage(slot=0, image=request.style_image),
            ReferenceImage(slot=1, image=request.content_image),
        ),
        steps=defaults.steps,
        width=defaults.width,
        height=defaults.height,
        guidance=defaults.guidance,
    )


def _build_product_shot(request: ProductShotRequest) -> EngineRequest:
    defaults = MODE_DEFAULTS[request.mode]
    return EngineRequest(
        prompt_text=product_shot_prompt(request.environment),
        images=(ReferenceImage(slot=0, image=request.product_image),),
        steps=defaults.steps,
        width=defaults.width,
        height=defaults.height,
        guidance=defaults.guidance,
    )


def _or_default(value, default):
    return default if value is None else value
