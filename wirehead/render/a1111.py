"""Renderer backed by the AUTOMATIC1111 Stable Diffusion web UI API."""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from wirehead.exceptions import RenderError
from wirehead.render.base import Renderer, RenderJob
from wirehead.render.fixup import fixup_request
from wirehead.render.models import (
    GenerationParameters,
    RenderLimits,
    RenderProgress,
    RenderResult,
)

__all__ = [
    "StableDiffusionConfig",
    "StableDiffusionRenderer",
    "StableDiffusionJob",
    "build_txt2img_payload",
    "parse_txt2img_response",
]

TXT2IMG_PATH = "/sdapi/v1/txt2img"
PROGRESS_PATH = "/sdapi/v1/progress"


class StableDiffusionConfig(BaseModel):
    url: str = Field(default="http://localhost:7860")
    username: str | None = None
    password: str | None = None
    timeout: float = Field(default=300.0, gt=0, description="Per-request timeout in seconds")
    limits: RenderLimits = Field(default_factory=RenderLimits)


def build_txt2img_payload(parameters: GenerationParameters, prompt: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "negative_prompt": parameters.negative_prompt or "",
        "width": parameters.width,
        "height": parameters.height,
        "steps": parameters.steps,
        "cfg_scale": parameters.cfg_scale,
        "sampler_name": parameters.sampler,
        "seed": parameters.seed,
        "batch_size": parameters.batch_size,
        "tiling": parameters.tiling,
        "restore_faces": parameters.restore_faces,
    }
    if parameters.model:
        payload["override_settings"] = {"sd_model_checkpoint": parameters.model}
    return payload


def parse_txt2img_response(data: dict[str, Any]) -> RenderResult:
    """Decode a ``/sdapi/v1/txt2img`` response body.

    Raises:
        RenderError: if the response carries no images or is malformed.
    """
    try:
        images = [base64.b64decode(image) for image in data.get("images") or []]
    except (TypeError, ValueError) as exc:
        raise RenderError(f"undecodable image in response: {exc}") from exc
    if not images:
        raise RenderError("generation returned no images")

    info = data.get("info") or {}
    if isinstance(info, str):
        try:
            info = json.loads(info)
        except json.JSONDecodeError:
            logger.warning("[StableDiffusion] Unparseable info field, ignoring seeds")
            info = {}

    seeds = info.get("all_seeds") or ([info["seed"]] if "seed" in info else [])
    return RenderResult(
        images=images,
        seeds=[int(seed) for seed in seeds],
        metadata={"info": info, "parameters": data.get("parameters") or {}},
    )


class StableDiffusionJob(RenderJob):
    def __init__(self, client: httpx.AsyncClient, request: asyncio.Task):
        self._client = client
        self._request = request

    async def poll_progress(self) -> RenderProgress:
        try:
            response = await self._client.get(
                PROGRESS_PATH, params={"skip_current_image": "false"}
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RenderError(f"progress request failed: {exc}") from exc

        try:
            data = response.json()
            preview = data.get("current_image")
            return RenderProgress(
                fraction_complete=float(data.get("progress") or 0.0),
                eta_seconds=float(data.get("eta_relative") or 0.0),
                preview_image=base64.b64decode(preview) if preview else None,
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise RenderError(f"malformed progress response: {exc}") from exc

    async def result(self) -> RenderResult:
        try:
            response: httpx.Response = await self._request
        except httpx.HTTPError as exc:
            raise RenderError(f"generation request failed: {exc}") from exc

        if response.is_error:
            raise RenderError(
                f"generation rejected with HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise RenderError(f"generation response is not JSON: {exc}") from exc
        return parse_txt2img_response(data)

    def done(self) -> bool:
        return self._request.done()


class StableDiffusionRenderer(Renderer):
    def __init__(
        self,
        config: StableDiffusionConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config or StableDiffusionConfig()
        auth = None
        if self.config.username and self.config.password:
            auth = httpx.BasicAuth(self.config.username, self.config.password)
        self._client = client or httpx.AsyncClient(
            base_url=self.config.url, auth=auth, timeout=self.config.timeout
        )
        logger.info("[StableDiffusion] Using web UI at {}", self.config.url)

    async def submit(self, parameters: GenerationParameters, prompt: str) -> RenderJob:
        parameters, prompt = fixup_request(parameters, prompt, self.config.limits)
        payload = build_txt2img_payload(parameters, prompt)
        logger.debug(
            "[StableDiffusion] txt2img {}x{} steps={} prompt={!r}",
            parameters.width,
            parameters.height,
            parameters.steps,
            prompt,
        )
        request = asyncio.create_task(
            self._client.post(TXT2IMG_PATH, json=payload), name="sd-txt2img"
        )
        return StableDiffusionJob(self._client, request)

    async def close(self) -> None:
        await self._client.aclose()
