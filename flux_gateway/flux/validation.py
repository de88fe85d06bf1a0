"""Per-mode validation of multipart form fields.

Each validator takes the already-read field mapping (text values as
``str``, uploads as :class:`ImageBlob`) and returns the matching
``GenerationRequest`` variant or raises a ``validation_error``. Nothing
here touches the network, so an invalid request never reaches the engine.
"""

from __future__ import annotations

import json
import math
from typing import Any, Callable, Mapping

from flux_gateway.core.types import (
    MAX_REFERENCE_IMAGES,
    BasicRequest,
    GenerationMode,
    GenerationRequest,
    ImageBlob,
    JsonPromptRequest,
    MultiReferenceRequest,
    ProductShotRequest,
    ReferenceImage,
    StyleTransferRequest,
)

from .errors import validation_error

FormFields = Mapping[str, Any]

# Bounds advertised by the web UI, applied only when enforcement is enabled.
PARAMETER_BOUNDS: dict[str, tuple[float, float]] = {
    "width": (512, 2048),
    "height": (512, 2048),
    "steps": (10, 50),
    "guidance": (1, 20),
}


def validate_basic(fields: FormFields, *, enforce_bounds: bool = False) -> BasicRequest:
    prompt = _require_text(fields, "prompt")
    return BasicRequest(
        prompt=prompt,
        steps=_optional_int(fields, "steps", enforce_bounds),
        width=_optional_int(fields, "width", enforce_bounds),
        height=_optional_int(fields, "height", enforce_bounds),
        guidance=_optional_float(fields, "guidance", enforce_bounds),
    )


def validate_multi_reference(
    fields: FormFields,
    *,
    enforce_bounds: bool = False,
) -> MultiReferenceRequest:
    prompt = _require_text(fields, "prompt")

    references: list[ReferenceImage] = []
    for slot in range(MAX_REFERENCE_IMAGES):
        image = _optional_image(fields, f"input_image_{slot}")
        if image is not None:
            references.append(ReferenceImage(slot=slot, image=image))

    if not references:
        raise validation_error(
            "At least one reference image is required "
            f"(input_image_0 to input_image_{MAX_REFERENCE_IMAGES - 1}).",
            code="missing_reference_image",
        )

    return MultiReferenceRequest(
        prompt=prompt,
        reference_images=tuple(references),
        steps=_optional_int(fields, "steps", enforce_bounds),
        width=_optional_int(fields, "width", enforce_bounds),
        height=_optional_int(fields, "height", enforce_bounds),
    )


def validate_json_prompt(
    fields: FormFields,
    *,
    enforce_bounds: bool = False,
) -> JsonPromptRequest:
    raw = _require_text(fields, "json_prompt")

    try:
        structured = json.loads(raw, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise validation_error(
            "json_prompt is not valid JSON.",
            code="malformed_json",
            details=f"{exc.msg} (line {exc.lineno}, column {exc.colno})",
        ) from exc
    except ValueError as exc:
        raise validation_error(
            "json_prompt is not valid JSON.",
            code="malformed_json",
            details=str(exc),
        ) from exc
    except RecursionError as exc:
        raise validation_error(
            "json_prompt is nested too deeply.",
            code="invalid_parameter",
        ) from exc

    return JsonPromptRequest(
        structured_prompt=structured,
        steps=_optional_int(fields, "steps", enforce_bounds),
        width=_optional_int(fields, "width", enforce_bounds),
        height=_optional_int(fields, "height", enforce_bounds),
        guidance=_optional_float(fields, "guidance", enforce_bounds),
    )


def validate_style_transfer(
    fields: FormFields,
    *,
    enforce_bounds: bool = False,
) -> StyleTransferRequest:
    style_image = _optional_image(fields, "style_image")
    content_image = _optional_image(fields, "content_image")

    if style_image is None or content_image is None:
        raise validation_error(
            "Both style_image and content_image are required.",
            code="missing_field",
        )

    return StyleTransferRequest(style_image=style_image, content_image=content_image)


def validate_product_shot(
    fields: FormFields,
    *,
    enforce_bounds: bool = False,
) -> ProductShotRequest:
    product_image = _optional_image(fields, "product_image")
    if product_image is None:
        raise validation_error(
            "Missing required field: product_image.",
            code="missing_field",
        )

    return ProductShotRequest(
        product_image=product_image,
        environment=_optional_text(fields, "environment"),
    )


VALIDATORS: dict[GenerationMode, Callable[..., GenerationRequest]] = {
    GenerationMode.BASIC: validate_basic,
    GenerationMode.MULTI_REFERENCE: validate_multi_reference,
    GenerationMode.JSON_PROMPT: validate_json_prompt,
    GenerationMode.STYLE_TRANSFER: validate_style_transfer,
    GenerationMode.PRODUCT_SHOT: validate_product_shot,
}


def validate_request(
    mode: GenerationMode,
    fields: FormFields,
    *,
    enforce_bounds: bool = False,
) -> GenerationRequest:
    return VALIDATORS[mode](fields, enforce_bounds=enforce_bounds)


def _optional_text(fields: FormFields, name: str) -> str | None:
    value = fields.get(name)
    if value is None:
        return None

    if isinstance(value, ImageBlob):
        raise validation_error(
            f"{name} must be a text field, not a file upload.",
            code="invalid_parameter",
        )

    text = str(value)
    return text or None


def _require_text(fields: FormFields, name: str) -> str:
    text = _optional_text(fields, name)
    if text is None:
        raise validation_error(
            f"Missing required field: {name}.",
            code="missing_field",
        )
    return text


def _optional_image(fields: FormFields, name: str) -> ImageBlob | None:
    value = fields.get(name)
    if value is None or value == "":
        return None

    if not isinstance(value, ImageBlob):
        raise validation_error(
            f"{name} must be an image file upload.",
            code="invalid_parameter",
        )

    # Browsers submit an empty part for an unselected file input.
    if not value.data:
        return None

    return value


def _optional_int(fields: FormFields, name: str, enforce_bounds: bool) -> int | None:
    text = _optional_text(fields, name)
    if text is None:
        return None

    try:
        value = int(text.strip())
    except ValueError:
        raise validation_error(
            f"{name} must be an integer.",
            code="invalid_parameter",
            details=f"Received {text!r}.",
        ) from None

    if value <= 0:
        raise validation_error(
            f"{name} must be a positive integer.",
            code="invalid_parameter",
            details=f"Received {value}.",
        )

    if enforce_bounds:
        _check_bounds(name, value)

    return value


def _optional_float(fields: FormFields, name: str, enforce_bounds: bool) -> float | None:
    text = _optional_text(fields, name)
    if text is None:
        return None

    try:
        value = float(text.strip())
    except ValueError:
        raise validation_error(
            f"{name} must be a number.",
            code="invalid_parameter",
            details=f"Received {text!r}.",
        ) from None

    if not math.isfinite(value) or value < 0:
        raise validation_error(
            f"{name} must be a finite, non-negative number.",
            code="invalid_parameter",
            details=f"Received {text!r}.",
        )

    if enforce_bounds:
        _check_bounds(name, value)

    return value


def _check_bounds(name: str, value: float) -> None:
    low, high = PARAMETER_BOUNDS[name]
    if not low <= value <= high:
        raise validation_error(
            f"{name} must be between {low:g} and {high:g}.",
            code="parameter_out_of_range",
            details=f"Received {value:g}.",
        )


def _reject_constant(name: str) -> None:
    # NaN and Infinity are not part of JSON.
    raise ValueError(f"{name} is not a valid JSON value")
