"""Gateway settings.

Values come from ``FLUX_GATEWAY_*`` environment variables or a ``.env``
file in the working directory, e.g.::

    FLUX_GATEWAY_ACCOUNT_ID=0123456789abcdef
    FLUX_GATEWAY_API_TOKEN=...
    FLUX_GATEWAY_ENFORCE_PARAMETER_BOUNDS=true
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import CANONICAL_MODEL_ID


class GatewaySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FLUX_GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Workers AI
    account_id: str = ""
    api_token: str = ""
    api_base_url: str = "https://api.cloudflare.com/client/v4"
    model: str = CANONICAL_MODEL_ID
    # None leaves timeouts to the hosting environment
    engine_timeout_seconds: float | None = Field(default=None, gt=0)

    # Responses
    cache_control: str = "public, max-age=3600"

    # Validation
    enforce_parameter_bounds: bool = False
    extra_moderation_markers: list[str] = Field(default_factory=list)

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"


@lru_cache
def get_settings() -> GatewaySettings:
    return GatewaySettings()
