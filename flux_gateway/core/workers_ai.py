from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

import httpx

from .config import GatewaySettings
from .errors import EngineFailure
from .types import EngineRequest

logger = logging.getLogger(__name__)


class WorkersAIEngine:
    """Runs FLUX.2 [dev] through the Workers AI REST endpoint."""

    def __init__(
        self,
        account_id: str,
        api_token: str,
        *,
        model: str,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._url = f"{base_url.rstrip('/')}/accounts/{account_id}/ai/run/{model}"
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: GatewaySettings) -> "WorkersAIEngine":
        return cls(
            settings.account_id,
            settings.api_token,
            model=settings.model,
            base_url=settings.api_base_url,
            timeout=settings.engine_timeout_seconds,
        )

    async def generate(self, request: EngineRequest) -> bytes:
        logger.debug(
            "POST %s (images=%d, steps=%d, size=%dx%d)",
            self._url,
            len(request.images),
            request.steps,
            request.width,
            request.height,
        )
        response = await self._client.post(self._url, files=_multipart_fields(request))

        content_type = response.headers.get("content-type", "")
        if response.is_success and content_type.startswith("image/"):
            return response.content

        payload = _json_or_none(response)
        if payload is None:
            raise EngineFailure(
                message=(
                    f"Workers AI returned status {response.status_code} "
                    f"with an unreadable body: {response.text[:500]}"
                ),
                status_code=response.status_code,
            )

        if not response.is_success or payload.get("success") is False:
            raise EngineFailure(
                message=_error_message(payload, response.status_code),
                status_code=response.status_code,
                code=_first_error_code(payload),
            )

        return _decode_image(payload)

    async def aclose(self) -> None:
        await self._client.aclose()


def _multipart_fields(request: EngineRequest) -> list[tuple[str, Any]]:
    # Text parts go in as filename-less file parts so the body is always
    # multipart/form-data, even for text-only requests.
    fields: list[tuple[str, Any]] = [
        ("prompt", (None, request.prompt_text)),
        ("steps", (None, str(request.steps))),
        ("width", (None, str(request.width))),
        ("height", (None, str(request.height))),
    ]
    if request.guidance is not None:
        fields.append(("guidance", (None, str(request.guidance))))

    for reference in request.images:
        name = f"input_image_{reference.slot}"
        fields.append(
            (
                name,
                (
                    reference.image.filename or f"{name}.png",
                    reference.image.data,
                    reference.image.content_type or "application/octet-stream",
                ),
            )
        )

    return fields


def _json_or_none(response: httpx.Response) -> dict[str, Any] | None:
    try:
        payload = response.json()
    except ValueError:
        return None

    return payload if isinstance(payload, dict) else None


def _error_message(payload: dict[str, Any], status_code: int) -> str:
    errors = payload.get("errors") or []
    parts = []
    for error in errors:
        if isinstance(error, dict):
            parts.append(f"{error.get('code', 'unknown')}: {error.get('message', '')}")
        else:
            parts.append(str(error))

    if not parts:
        return f"Workers AI request failed with status {status_code}."

    return "; ".join(parts)


def _first_error_code(payload: dict[str, Any]) -> str | None:
    for error in payload.get("errors") or []:
        if isinstance(error, dict) and error.get("code") is not None:
            return str(error["code"])
    return None


def _decode_image(payload: dict[str, Any]) -> bytes:
    result = payload.get("result")
    encoded = result.get("image") if isinstance(result, dict) else None
    if not isinstance(encoded, str) or not encoded:
        raise EngineFailure(message="Workers AI response did not include an image.")

    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EngineFailure(
            message=f"Workers AI returned an image that is not valid base64: {exc}"
        ) from exc
