from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from flux_gateway import __version__
from flux_gateway.core.config import GatewaySettings, get_settings
from flux_gateway.core.generation import ImageEngine
from flux_gateway.core.workers_ai import WorkersAIEngine
from flux_gateway.dependencies import register_exception_handlers
from flux_gateway.flux.errors import build_classifier
from flux_gateway.internal import admin
from flux_gateway.middleware import GatewayBoundaryMiddleware
from flux_gateway.routers import generate, ui

logger = logging.getLogger(__name__)


def create_app(
    engine: ImageEngine | None = None,
    settings: GatewaySettings | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    owned_engine: WorkersAIEngine | None = None

    if engine is None:
        if not settings.account_id or not settings.api_token:
            logger.warning(
                "FLUX_GATEWAY_ACCOUNT_ID or FLUX_GATEWAY_API_TOKEN is not set; "
                "generation requests will fail."
            )
        owned_engine = WorkersAIEngine.from_settings(settings)
        engine = owned_engine

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("Serving %s via %s", settings.model, type(engine).__name__)
        yield
        if owned_engine is not None:
            await owned_engine.aclose()

    app = FastAPI(
        title="flux-gateway",
        version=__version__,
        docs_url="/docs",
        redirect_slashes=False,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.classifier = build_classifier(settings.extra_moderation_markers)

    register_exception_handlers(app)
    app.add_middleware(GatewayBoundaryMiddleware)

    app.include_router(ui.router)
    app.include_router(generate.router)
    app.include_router(admin.router)

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
