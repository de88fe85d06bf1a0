from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from flux_gateway.core.generation import ImageEngine, run_generation
from flux_gateway.core.types import (
    EngineRequest,
    GenerationFailure,
    GenerationMode,
    ImageBlob,
)

from .builder import build_engine_request
from .errors import ClassifiedError, ErrorClassifier, ErrorKind, validation_error
from .validation import validate_request

logger = logging.getLogger(__name__)


async def read_form_fields(request: Request) -> dict[str, Any]:
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as exc:
        detail = getattr(exc, "detail", None) or getattr(exc, "message", None) or str(exc)
        raise validation_error(
            "Request body must be multipart/form-data.",
            code="invalid_body",
            details=str(detail),
        ) from exc

    fields: dict[str, Any] = {}
    try:
        for name, value in form.multi_items():
            # First occurrence wins, as with FormData.get().
            if name in fields:
                continue
            if isinstance(value, UploadFile):
                fields[name] = ImageBlob(
                    data=await value.read(),
                    content_type=value.content_type,
                    filename=value.filename,
                )
            else:
                fields[name] = value
    finally:
        await form.close()

    return fields


def prepare_engine_request(
    mode: GenerationMode,
    fields: dict[str, Any],
    *,
    enforce_bounds: bool = False,
) -> EngineRequest:
    try:
        generation_request = validate_request(mode, fields, enforce_bounds=enforce_bounds)
    except ClassifiedError as exc:
        logger.info("Rejected %s request: %s (%s)", mode.value, exc.user_message, exc.code)
        raise

    engine_request = build_engine_request(generation_request)
    logger.info(
        "Dispatching %s request: images=%s steps=%d size=%dx%d guidance=%s",
        mode.value,
        [reference.slot for reference in engine_request.images],
        engine_request.steps,
        engine_request.width,
        engine_request.height,
        engine_request.guidance,
    )
    return engine_request


async def generate_image(
    mode: GenerationMode,
    fields: dict[str, Any],
    *,
    engine: ImageEngine,
    classifier: ErrorClassifier,
    enforce_bounds: bool = False,
) -> bytes:
    engine_request = prepare_engine_request(mode, fields, enforce_bounds=enforce_bounds)

    outcome = await run_generation(engine, engine_request)
    if isinstance(outcome, GenerationFailure):
        classified = classifier.classify(outcome.message, outcome.cause)
        if classified.kind is ErrorKind.CONTENT_MODERATION:
            logger.warning("%s request rejected by content moderation", mode.value)
        else:
            logger.warning(
                "%s request failed (status=%s, code=%s): %s",
                mode.value,
                getattr(outcome.cause, "status_code", None),
                getattr(outcome.cause, "code", None),
                outcome.message,
            )
        raise classified from outcome.cause

    return outcome.image
