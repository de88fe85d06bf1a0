from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ErrorBody(BaseModel):
    error: str
    details: str | None = None
    code: str | None = None
    suggestions: list[str] | None = None

    model_config = ConfigDict(extra="forbid")


class HealthStatus(BaseModel):
    status: str
    model: str
