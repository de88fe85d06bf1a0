from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from flux_gateway.core.config import GatewaySettings
from flux_gateway.core.generation import ImageEngine
from flux_gateway.flux.errors import ClassifiedError, ErrorClassifier
from flux_gateway.flux.responses import (
    error_response,
    not_found_response,
    plain_text_response,
)


def get_engine(request: Request) -> ImageEngine:
    return request.app.state.engine


def get_classifier(request: Request) -> ErrorClassifier:
    return request.app.state.classifier


def get_gateway_settings(request: Request) -> GatewaySettings:
    return request.app.state.settings


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClassifiedError)
    async def handle_classified_error(
        _request: Request,
        exc: ClassifiedError,
    ) -> Response:
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(
        _request: Request,
        exc: StarletteHTTPException,
    ) -> Response:
        if exc.status_code == 404:
            return not_found_response()

        if exc.status_code == 405:
            return plain_text_response(405, "Method Not Allowed")

        return plain_text_response(exc.status_code, str(exc.detail))
