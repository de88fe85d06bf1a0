from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from conftest import PNG_BYTES, StubEngine
from flux_gateway.core.config import GatewaySettings
from flux_gateway.core.errors import EngineFailure
from flux_gateway.main import create_app

CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "GET, POST, OPTIONS",
    "access-control-allow-headers": "Content-Type, Authorization",
}


def _image(name: str, data: bytes = b"image-bytes"):
    return (f"{name}.png", data, "image/png")


def _assert_cors(response) -> None:
    for header, value in CORS.items():
        assert response.headers[header] == value


def test_health_returns_status_and_model(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "model": "flux-2-dev"}
    _assert_cors(response)


def test_index_serves_html(client: TestClient):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "/api/multi-reference" in response.text


@pytest.mark.parametrize("path", ["/", "/api/generate", "/api/nonexistent", "/health"])
def test_options_is_preflight_on_any_path(client: TestClient, path: str):
    response = client.options(path)

    assert response.status_code == 204
    assert response.content == b""
    _assert_cors(response)
    assert "content-type" not in response.headers


@pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
@pytest.mark.parametrize("path", ["/api/nonexistent", "/api/generate/", "/health/"])
def test_unknown_path_returns_404_plain_text(client: TestClient, method: str, path: str):
    response = client.request(method, path, follow_redirects=False)

    assert response.status_code == 404
    assert response.text == "Not Found"
    assert response.headers["content-type"].startswith("text/plain")
    _assert_cors(response)


def test_wrong_method_on_known_path_returns_405(client: TestClient, engine: StubEngine):
    response = client.get("/api/generate")

    assert response.status_code == 405
    assert engine.calls == 0


def test_basic_generation_returns_image(client: TestClient, engine: StubEngine):
    response = client.post("/api/generate", data={"prompt": "a lighthouse at dusk"})

    assert response.status_code == 200
    assert response.content == PNG_BYTES
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "public, max-age=3600"
    _assert_cors(response)

    request = engine.requests[0]
    assert request.prompt_text == "a lighthouse at dusk"
    assert request.images == ()
    assert (request.steps, request.width, request.height, request.guidance) == (
        20,
        1024,
        1024,
        7.5,
    )


def test_basic_generation_uses_caller_parameters(client: TestClient, engine: StubEngine):
    response = client.post(
        "/api/generate",
        data={
            "prompt": "a fox",
            "steps": "35",
            "width": "768",
            "height": "512",
            "guidance": "4.5",
        },
    )

    assert response.status_code == 200
    request = engine.requests[0]
    assert (request.steps, request.width, request.height, request.guidance) == (
        35,
        768,
        512,
        4.5,
    )


@pytest.mark.parametrize(
    ("path", "data", "files"),
    [
        ("/api/generate", {}, None),
        ("/api/generate", {"prompt": ""}, None),
        ("/api/multi-reference", {"prompt": "no images"}, None),
        ("/api/multi-reference", {}, {"input_image_0": _image("a")}),
        ("/api/json-prompt", {}, None),
        ("/api/style-transfer", {}, {"style_image": _image("style")}),
        ("/api/style-transfer", {}, {"content_image": _image("content")}),
        ("/api/product-shot", {"environment": "on a beach"}, None),
    ],
)
def test_missing_required_fields_never_reach_engine(
    client: TestClient,
    engine: StubEngine,
    path: str,
    data: dict,
    files: dict | None,
):
    response = client.post(path, data=data, files=files)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] in {"missing_field", "missing_reference_image"}
    assert "error" in body
    assert engine.calls == 0
    _assert_cors(response)


def test_multi_reference_keeps_slot_order_and_skips_gaps(
    client: TestClient,
    engine: StubEngine,
):
    response = client.post(
        "/api/multi-reference",
        data={"prompt": "put the cat from image 0 into the room from image 2"},
        files={
            "input_image_2": _image("room", b"room"),
            "input_image_0": _image("cat", b"cat"),
        },
    )

    assert response.status_code == 200
    request = engine.requests[0]
    assert [ref.slot for ref in request.images] == [0, 2]
    assert [ref.image.data for ref in request.images] == [b"cat", b"room"]
    assert request.steps == 25
    assert request.guidance is None


def test_multi_reference_treats_empty_upload_as_absent(
    client: TestClient,
    engine: StubEngine,
):
    response = client.post(
        "/api/multi-reference",
        data={"prompt": "empty"},
        files={"input_image_0": ("", b"", "application/octet-stream")},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "missing_reference_image"
    assert engine.calls == 0


def test_json_prompt_is_reserialized(client: TestClient, engine: StubEngine):
    response = client.post(
        "/api/json-prompt",
        data={"json_prompt": '{ "scene": "harbour",  "style": ["watercolor"] }'},
    )

    assert response.status_code == 200
    request = engine.requests[0]
    assert json.loads(request.prompt_text) == {"scene": "harbour", "style": ["watercolor"]}
    assert request.steps == 30
    assert request.guidance == 7.5


def test_malformed_json_prompt_is_distinct_from_missing(
    client: TestClient,
    engine: StubEngine,
):
    malformed = client.post("/api/json-prompt", data={"json_prompt": '{"a":'})
    missing = client.post("/api/json-prompt", data={})

    assert malformed.status_code == 400
    assert missing.status_code == 400
    assert malformed.json()["code"] == "malformed_json"
    assert missing.json()["code"] == "missing_field"
    assert malformed.json()["error"] != missing.json()["error"]
    assert engine.calls == 0


def test_style_transfer_uses_fixed_prompt_and_slot_order(
    client: TestClient,
    engine: StubEngine,
):
    response = client.post(
        "/api/style-transfer",
        data={"prompt": "ignored"},
        files={
            "content_image": _image("content", b"C"),
            "style_image": _image("style", b"S"),
        },
    )

    assert response.status_code == 200
    request = engine.requests[0]
    assert request.prompt_text == "take the subject of image 1 and style it like image 0"
    assert [ref.image.data for ref in request.images] == [b"S", b"C"]
    assert [ref.slot for ref in request.images] == [0, 1]
    assert request.steps == 25


def test_product_shot_default_environment(client: TestClient, engine: StubEngine):
    response = client.post(
        "/api/product-shot",
        files={"product_image": _image("bottle", b"P")},
    )

    assert response.status_code == 200
    request = engine.requests[0]
    assert request.prompt_text == (
        "professional product photography, on a modern desk with soft lighting, "
        "high quality, studio lighting"
    )
    assert [ref.image.data for ref in request.images] == [b"P"]
    assert (request.steps, request.guidance) == (30, 8.0)


def test_product_shot_custom_environment(client: TestClient, engine: StubEngine):
    response = client.post(
        "/api/product-shot",
        data={"environment": "on wet black slate"},
        files={"product_image": _image("bottle")},
    )

    assert response.status_code == 200
    assert engine.requests[0].prompt_text == (
        "professional product photography, on wet black slate, "
        "high quality, studio lighting"
    )


def test_non_numeric_parameter_is_rejected(client: TestClient, engine: StubEngine):
    response = client.post("/api/generate", data={"prompt": "x", "steps": "lots"})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_parameter"
    assert engine.calls == 0


def test_bounds_enforced_when_enabled(engine: StubEngine):
    settings = GatewaySettings(enforce_parameter_bounds=True)
    client = TestClient(create_app(engine=engine, settings=settings))

    response = client.post("/api/generate", data={"prompt": "x", "width": "4096"})

    assert response.status_code == 400
    assert response.json()["code"] == "parameter_out_of_range"
    assert engine.calls == 0


def test_bounds_not_enforced_by_default(client: TestClient, engine: StubEngine):
    response = client.post("/api/generate", data={"prompt": "x", "width": "4096"})

    assert response.status_code == 200
    assert engine.requests[0].width == 4096


def test_moderation_failure_returns_400_with_guidance(settings: GatewaySettings):
    engine = StubEngine(
        error=EngineFailure("3030: Input prompt contains NSFW or copyrighted content")
    )
    client = TestClient(create_app(engine=engine, settings=settings))

    response = client.post("/api/generate", data={"prompt": "a famous mouse"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "content_moderation"
    assert len(body["suggestions"]) == 3
    assert "3030" not in body["error"]
    assert "3030" not in body["details"]
    _assert_cors(response)


def test_engine_failure_returns_500_with_raw_details(settings: GatewaySettings):
    engine = StubEngine(error=EngineFailure("5006: Internal inference error"))
    client = TestClient(create_app(engine=engine, settings=settings))

    response = client.post("/api/generate", data={"prompt": "a tree"})

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "engine_error"
    assert body["details"] == "5006: Internal inference error"
    assert "suggestions" not in body


def test_unexpected_handler_error_becomes_500(
    client: TestClient,
    monkeypatch,
):
    import flux_gateway.routers.generate as generate_router

    async def exploding_generate_image(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(generate_router, "generate_image", exploding_generate_image)

    response = client.post("/api/generate", data={"prompt": "x"})

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "internal_error"
    assert body["details"] == "boom"
    _assert_cors(response)


def test_extra_moderation_markers_from_settings():
    settings = GatewaySettings(extra_moderation_markers=["NSFW"])
    engine = StubEngine(error=EngineFailure("request blocked: NSFW"))
    client = TestClient(create_app(engine=engine, settings=settings))

    response = client.post("/api/generate", data={"prompt": "x"})

    assert response.status_code == 400
    assert response.json()["code"] == "content_moderation"


@pytest.mark.parametrize("raw", ["NaN", "Infinity", '{"a": -Infinity}'])
def test_json_prompt_non_json_constants_are_rejected(
    client: TestClient,
    engine: StubEngine,
    raw: str,
):
    response = client.post("/api/json-prompt", data={"json_prompt": raw})

    assert response.status_code == 400
    assert response.json()["code"] == "malformed_json"
    assert engine.calls == 0


def test_deeply_nested_json_prompt_is_a_validation_error(
    client: TestClient,
    engine: StubEngine,
):
    depth = 100_000
    response = client.post(
        "/api/json-prompt",
        data={"json_prompt": "[" * depth + "]" * depth},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_parameter"
    assert engine.calls == 0


def test_engine_failure_log_includes_provider_status_and_code(
    settings: GatewaySettings,
    caplog,
):
    engine = StubEngine(
        error=EngineFailure("5006: Internal inference error", status_code=502, code="5006")
    )
    client = TestClient(create_app(engine=engine, settings=settings))

    with caplog.at_level("WARNING", logger="flux_gateway.flux.adapter"):
        client.post("/api/generate", data={"prompt": "a tree"})

    assert "status=502, code=5006" in caplog.text
