from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from flux_gateway.core.config import GatewaySettings
from flux_gateway.core.generation import ImageEngine
from flux_gateway.core.types import GenerationMode
from flux_gateway.dependencies import (
    get_classifier,
    get_engine,
    get_gateway_settings,
)
from flux_gateway.flux.adapter import generate_image, read_form_fields
from flux_gateway.flux.errors import ErrorClassifier
from flux_gateway.flux.responses import image_response

router = APIRouter(tags=["generation"])


async def _handle(
    mode: GenerationMode,
    request: Request,
    engine: ImageEngine,
    classifier: ErrorClassifier,
    settings: GatewaySettings,
) -> Response:
    fields = await read_form_fields(request)
    image = await generate_image(
        mode,
        fields,
        engine=engine,
        classifier=classifier,
        enforce_bounds=settings.enforce_parameter_bounds,
    )
    return image_response(image, cache_control=settings.cache_control)


@router.post(GenerationMode.BASIC.path)
async def basic_generation(
    request: Request,
    engine: ImageEngine = Depends(get_engine),
    classifier: ErrorClassifier = Depends(get_classifier),
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> Response:
    return await _handle(GenerationMode.BASIC, request, engine, classifier, settings)


@router.post(GenerationMode.MULTI_REFERENCE.path)
async def multi_reference(
    request: Request,
    engine: ImageEngine = Depends(get_engine),
    classifier: ErrorClassifier = Depends(get_classifier),
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> Response:
    return await _handle(
        GenerationMode.MULTI_REFERENCE, request, engine, classifier, settings
    )


@router.post(GenerationMode.JSON_PROMPT.path)
async def json_prompt(
    request: Request,
    engine: ImageEngine = Depends(get_engine),
    classifier: ErrorClassifier = Depends(get_classifier),
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> Response:
    return await _handle(GenerationMode.JSON_PROMPT, request, engine, classifier, settings)


@router.post(GenerationMode.STYLE_TRANSFER.path)
async def style_transfer(
    request: Request,
    engine: ImageEngine = Depends(get_engine),
    classifier: ErrorClassifier = Depends(get_classifier),
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> Response:
    return await _handle(
        GenerationMode.STYLE_TRANSFER, request, engine, classifier, settings
    )


@router.post(GenerationMode.PRODUCT_SHOT.path)
async def product_shot(
    request: Request,
    engine: ImageEngine = Depends(get_engine),
    classifier: ErrorClassifier = Depends(get_classifier),
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> Response:
    return await _handle(GenerationMode.PRODUCT_SHOT, request, engine, classifier, settings)
