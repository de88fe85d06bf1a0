from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EngineFailure(Exception):
    message: str
    status_code: int | None = None
    code: str | None = None

    def __str__(self) -> str:
        return self.message
