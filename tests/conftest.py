import asyncio

import pytest

from wirehead.chat.base import Channel, Post
from wirehead.exceptions import ChannelError, RenderError
from wirehead.render.base import Renderer, RenderJob
from wirehead.render.models import GenerationParameters, RenderProgress, RenderResult


class FakeJob(RenderJob):
    def __init__(self, result: RenderResult | None = None, error: Exception | None = None):
        self._result = result
        self._error = error
        self.polls = 0

    async def poll_progress(self) -> RenderProgress:
        self.polls += 1
        return RenderProgress(fraction_complete=1.0, eta_seconds=0.0)

    async def result(self) -> RenderResult:
        await asyncio.sleep(0)
        if self._error is not None:
            raise self._error
        return self._result


class FakeRenderer(Renderer):
    """Returns one tiny image per request and records what it was asked for."""

    def __init__(self, seed: int = 7, fail: bool = False):
        self.seed = seed
        self.fail = fail
        self.requests: list[tuple[GenerationParameters, str]] = []

    async def submit(self, parameters: GenerationParameters, prompt: str) -> RenderJob:
        self.requests.append((parameters, prompt))
        if self.fail:
            return FakeJob(error=RenderError("generator is down"))
        seed = parameters.seed if parameters.seed >= 0 else self.seed
        return FakeJob(RenderResult(images=[b"image"], seeds=[seed]))


class RecordingChannel(Channel):
    def __init__(self, name: str = "recording", fail: bool = False):
        self.name = name
        self.fail = fail
        self.posts: list[Post] = []

    async def send(self, post: Post) -> None:
        if self.fail:
            raise ChannelError("channel is gone")
        self.posts.append(post)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def failing_renderer():
    return FakeRenderer(fail=True)


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def failing_channel():
    return RecordingChannel(fail=True)
