from abc import ABC, abstractmethod

from wirehead.render.models import GenerationParameters, RenderProgress, RenderResult


class RenderJob(ABC):
    """Handle to one submitted generation."""

    @abstractmethod
    async def poll_progress(self) -> RenderProgress:
        """Current progress of the job (may include a preview)."""

    @abstractmethod
    async def result(self) -> RenderResult:
        """Wait for the job to finish.

        Raises:
            RenderError: if the generation failed.
        """


class Renderer(ABC):
    """External image generation service."""

    @abstractmethod
    async def submit(self, parameters: GenerationParameters, prompt: str) -> RenderJob:
        """Start a generation of ``prompt`` with ``parameters``."""

    async def close(self) -> None:
        pass
