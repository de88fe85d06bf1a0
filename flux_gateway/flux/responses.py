from __future__ import annotations

from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .errors import ClassifiedError, ErrorKind, not_found_error

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

IMAGE_MEDIA_TYPE = "image/png"
DEFAULT_CACHE_CONTROL = "public, max-age=3600"


def cors_headers() -> dict[str, str]:
    return dict(CORS_HEADERS)


def apply_cors_headers(response: Response) -> Response:
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response


def image_response(image: bytes, cache_control: str = DEFAULT_CACHE_CONTROL) -> Response:
    headers = cors_headers()
    headers["Cache-Control"] = cache_control
    return Response(content=image, media_type=IMAGE_MEDIA_TYPE, headers=headers)


def error_response(error: ClassifiedError) -> Response:
    # Route misses keep the plain-text body.
    if error.kind is ErrorKind.NOT_FOUND:
        return plain_text_response(error.status_code, error.user_message)

    return JSONResponse(
        status_code=error.status_code,
        content=error.to_error(),
        headers=cors_headers(),
    )


def preflight_response() -> Response:
    return Response(status_code=204, headers=cors_headers())


def plain_text_response(status_code: int, text: str) -> PlainTextResponse:
    return PlainTextResponse(text, status_code=status_code, headers=cors_headers())


def not_found_response() -> Response:
    return error_response(not_found_error())
