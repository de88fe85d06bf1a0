from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from flux_gateway.core.config import GatewaySettings
from flux_gateway.main import create_app

PNG_BYTES = b"\x89PNG\r\n\x1a\nstub-image"


class StubEngine:
    def __init__(self, image: bytes = PNG_BYTES, error: Exception | None = None):
        self.image = image
        self.error = error
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.image


@pytest.fixture()
def settings() -> GatewaySettings:
    return GatewaySettings(account_id="test-account", api_token="test-token")


@pytest.fixture()
def engine() -> StubEngine:
    return StubEngine()


@pytest.fixture()
def client(engine: StubEngine, settings: GatewaySettings) -> TestClient:
    return TestClient(create_app(engine=engine, settings=settings))
