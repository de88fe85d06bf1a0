from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from .schemas import ErrorBody

DEFAULT_MODERATION_MARKERS: tuple[str, ...] = ("3030", "flagged", "copyright")

MODERATION_MESSAGE = (
    "Your prompt may contain restricted content and was rejected by the "
    "image model's content filter."
)
MODERATION_DETAILS = (
    "The request was flagged by the provider's safety system. The most common "
    "causes are references to copyrighted content, public figures, or brand names."
)
MODERATION_SUGGESTIONS: tuple[str, ...] = (
    "Remove names of real people, celebrities, or other public figures.",
    "Avoid copyrighted characters, franchises, brand names, and logos.",
    "Describe the subject in generic terms: appearance, style, setting, and mood.",
)
ENGINE_ERROR_MESSAGE = "Image generation failed."


class ErrorKind(str, Enum):
    CONTENT_MODERATION = "content_moderation"
    ENGINE_ERROR = "engine_error"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.CONTENT_MODERATION: 400,
    ErrorKind.ENGINE_ERROR: 500,
    ErrorKind.NOT_FOUND: 404,
}


@dataclass
class ClassifiedError(Exception):
    """Caller-facing error with its HTTP status derived from the kind."""

    kind: ErrorKind
    user_message: str
    details: str | None = None
    code: str | None = None
    suggestions: list[str] | None = field(default=None)

    def __str__(self) -> str:
        return self.user_message

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_error(self) -> dict[str, Any]:
        body = ErrorBody(
            error=self.user_message,
            details=self.details,
            code=self.code,
            suggestions=self.suggestions,
        )
        return body.model_dump(exclude_none=True)


def validation_error(
    message: str,
    *,
    code: str,
    details: str | None = None,
) -> ClassifiedError:
    return ClassifiedError(
        kind=ErrorKind.VALIDATION_ERROR,
        user_message=message,
        details=details,
        code=code,
    )


def not_found_error() -> ClassifiedError:
    return ClassifiedError(
        kind=ErrorKind.NOT_FOUND,
        user_message="Not Found",
        code="not_found",
    )


def internal_error(exc: BaseException) -> ClassifiedError:
    return ClassifiedError(
        kind=ErrorKind.ENGINE_ERROR,
        user_message=ENGINE_ERROR_MESSAGE,
        details=str(exc),
        code="internal_error",
    )


class ErrorClassifier:
    """Maps raw engine failure text onto the gateway's error kinds.

    Matching is a case-sensitive substring test against ``markers``.
    The classifier never raises.
    """

    def __init__(self, markers: Iterable[str] = DEFAULT_MODERATION_MARKERS) -> None:
        self.markers = tuple(marker for marker in markers if marker)

    def is_moderation(self, message: str) -> bool:
        return any(marker in message for marker in self.markers)

    def classify(self, message: str, cause: BaseException | None = None) -> ClassifiedError:
        text = message if isinstance(message, str) else str(message)

        if self.is_moderation(text):
            return ClassifiedError(
                kind=ErrorKind.CONTENT_MODERATION,
                user_message=MODERATION_MESSAGE,
                details=MODERATION_DETAILS,
                code="content_moderation",
                suggestions=list(MODERATION_SUGGESTIONS),
            )

        return ClassifiedError(
            kind=ErrorKind.ENGINE_ERROR,
            user_message=ENGINE_ERROR_MESSAGE,
            details=text,
            code="engine_error",
        )


def build_classifier(extra_markers: Iterable[str] = ()) -> ErrorClassifier:
    return ErrorClassifier((*DEFAULT_MODERATION_MARKERS, *extra_markers))
