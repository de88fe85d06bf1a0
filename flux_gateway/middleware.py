from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from flux_gateway.flux.errors import internal_error
from flux_gateway.flux.responses import (
    apply_cors_headers,
    error_response,
    preflight_response,
)

logger = logging.getLogger(__name__)


class GatewayBoundaryMiddleware(BaseHTTPMiddleware):
    """Outermost request layer.

    Answers every OPTIONS request as a CORS preflight, stamps the CORS
    headers on all other responses, and turns any exception that escaped
    the routes into a formatted 500.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.method == "OPTIONS":
            return preflight_response()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return error_response(internal_error(exc))

        return apply_cors_headers(response)
