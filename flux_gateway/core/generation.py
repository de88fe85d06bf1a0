from __future__ import annotations

import logging
from typing import Protocol

from .types import (
    EngineRequest,
    GenerationFailure,
    GenerationOutcome,
    GenerationSuccess,
)

logger = logging.getLogger(__name__)


class ImageEngine(Protocol):
    async def generate(self, request: EngineRequest) -> bytes: ...


async def run_generation(
    engine: ImageEngine,
    request: EngineRequest,
) -> GenerationOutcome:
    try:
        image = await engine.generate(request)
    except Exception as exc:
        logger.warning("Image engine call failed: %s", exc)
        return GenerationFailure(message=str(exc), cause=exc)

    return GenerationSuccess(image=image)
