import asyncio
import base64
import json

import httpx
import pytest

from wirehead.exceptions import RenderError
from wirehead.render.a1111 import (
    StableDiffusionConfig,
    StableDiffusionRenderer,
    build_txt2img_payload,
    parse_txt2img_response,
)
from wirehead.render.models import GenerationParameters


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def _renderer(handler, **config):
    client = httpx.AsyncClient(
        base_url="http://sd.local", transport=httpx.MockTransport(handler)
    )
    return StableDiffusionRenderer(StableDiffusionConfig(**config), client=client)


def test_payload_overrides_model_only_when_set():
    payload = build_txt2img_payload(GenerationParameters(), "a cat")
    assert payload["prompt"] == "a cat"
    assert payload["sampler_name"] == "Euler a"
    assert "override_settings" not in payload

    payload = build_txt2img_payload(GenerationParameters(model="sd15"), "a cat")
    assert payload["override_settings"] == {"sd_model_checkpoint": "sd15"}


def test_parse_response_reads_seeds_from_info_string():
    result = parse_txt2img_response(
        {
            "images": [_b64(b"one"), _b64(b"two")],
            "info": json.dumps({"all_seeds": [11, 12], "seed": 11}),
        }
    )
    assert [(i.data, i.seed) for i in result.rendered()] == [(b"one", 11), (b"two", 12)]


def test_parse_response_falls_back_to_single_seed():
    result = parse_txt2img_response({"images": [_b64(b"one")], "info": {"seed": 5}})
    assert result.seeds == [5]


def test_parse_response_without_images_fails():
    with pytest.raises(RenderError):
        parse_txt2img_response({"images": [], "info": "{}"})


def test_submit_posts_fixed_up_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/sdapi/v1/txt2img":
            seen["payload"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"images": [_b64(b"png")], "info": json.dumps({"all_seeds": [42]})},
            )
        if request.url.path == "/sdapi/v1/progress":
            return httpx.Response(
                200, json={"progress": 0.5, "eta_relative": 1.5, "current_image": None}
            )
        return httpx.Response(404)

    async def scenario():
        renderer = _renderer(handler)
        try:
            job = await renderer.submit(
                GenerationParameters(width=300, height=300, model="Inkpunk [nvinkpunk]"),
                "a city",
            )
            progress = await job.poll_progress()
            result = await job.result()
        finally:
            await renderer.close()
        return progress, result

    progress, result = asyncio.run(scenario())

    assert progress.fraction_complete == 0.5
    assert progress.eta_seconds == 1.5
    assert result.images == [b"png"]
    assert result.seeds == [42]
    assert seen["payload"]["prompt"] == "nvinkpunk, a city"
    assert (seen["payload"]["width"], seen["payload"]["height"]) == (320, 320)


def test_http_failure_is_a_render_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="CUDA out of memory")

    async def scenario():
        renderer = _renderer(handler)
        try:
            job = await renderer.submit(GenerationParameters(), "a city")
            await job.result()
        finally:
            await renderer.close()

    with pytest.raises(RenderError, match="500"):
        asyncio.run(scenario())


def test_transport_failure_is_a_render_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        renderer = _renderer(handler)
        try:
            job = await renderer.submit(GenerationParameters(), "a city")
            with pytest.raises(RenderError):
                await job.poll_progress()
            await job.result()
        finally:
            await renderer.close()

    with pytest.raises(RenderError):
        asyncio.run(scenario())


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>busy</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"progress": "half"}),
    ],
)
def test_malformed_progress_is_a_render_error(response):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/sdapi/v1/progress":
            return response
        return httpx.Response(200, json={"images": [_b64(b"png")], "info": "{}"})

    async def scenario():
        renderer = _renderer(handler)
        try:
            job = await renderer.submit(GenerationParameters(), "a city")
            try:
                await job.poll_progress()
            finally:
                await job.result()
        finally:
            await renderer.close()

    with pytest.raises(RenderError, match="malformed progress"):
        asyncio.run(scenario())
