from __future__ import annotations

import asyncio

from loguru import logger

from wirehead.chat.base import Channel, Post
from wirehead.exceptions import ActionEncodeError
from wirehead.feedback.components import promote_button, rating_buttons
from wirehead.fitness.notify import LatestGenome
from wirehead.fitness.store import FitnessStore
from wirehead.genome import Genome
from wirehead.render.base import Renderer
from wirehead.render.models import GenerationParameters, RenderedImage
from wirehead.render.placeholder import placeholder_image
from wirehead.tags import PromptTemplate

__all__ = ["FeedbackLoop", "render_images", "DEFAULT_FEEDBACK_INTERVAL"]

DEFAULT_FEEDBACK_INTERVAL = 0.5


async def render_images(
    renderer: Renderer,
    parameters: GenerationParameters,
    prompt: str,
    placeholder_path: str | None = None,
) -> list[RenderedImage]:
    """Render ``prompt``; always returns at least one image.

    Any failure is logged and replaced by the placeholder image.
    """
    try:
        job = await renderer.submit(parameters, prompt)
        result = await job.result()
        images = result.rendered()
        if images:
            return images
        logger.warning("[Render] No images for {!r}, using placeholder", prompt)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("[Render] Generation failed for {!r}: {}", prompt, exc)
    return [placeholder_image(placeholder_path)]


class FeedbackLoop:
    """Cooperative loop that turns pending evaluations into rateable posts.

    Each tick it posts the latest best genome (if any), then drains the
    store's pending set and posts every genome with rating buttons.
    """

    def __init__(
        self,
        *,
        store: FitnessStore,
        best: LatestGenome,
        renderer: Renderer,
        channel: Channel,
        template: PromptTemplate,
        parameters: GenerationParameters,
        hide_prompt: bool = False,
        allow_promotion: bool = False,
        interval: float = DEFAULT_FEEDBACK_INTERVAL,
        placeholder_path: str | None = None,
    ):
        self.store = store
        self.best = best
        self.renderer = renderer
        self.channel = channel
        self.template = template
        self.parameters = parameters
        self.hide_prompt = hide_prompt
        self.allow_promotion = allow_promotion
        self.interval = interval
        self.placeholder_path = placeholder_path
        self.shutdown = store.shutdown

        self.posted = 0
        self.failures = 0

    async def run(self) -> None:
        logger.info("[FeedbackLoop] Start | channel={}", self.channel.name)
        try:
            while not self.shutdown.is_set():
                try:
                    await self.step()
                except Exception as exc:  # pylint: disable=broad-except
                    self.failures += 1
                    logger.exception("[FeedbackLoop] Iteration failed: {}", exc)
                await asyncio.sleep(self.interval)
        finally:
            logger.info("[FeedbackLoop] Stopped after {} post(s)", self.posted)

    async def step(self) -> None:
        best = self.best.take()
        if best is not None:
            await self._post_best(best)

        for genome in self.store.drain_pending():
            if self.shutdown.is_set():
                break
            try:
                await self._post_candidate(genome)
            except ActionEncodeError as exc:
                # retrying cannot help; the genome stays unrated
                self.failures += 1
                logger.error("[FeedbackLoop] Cannot build controls for {}: {}", genome, exc)
            except Exception as exc:  # pylint: disable=broad-except
                self.failures += 1
                requeued = self.store.requeue(genome)
                logger.warning(
                    "[FeedbackLoop] Posting {} failed ({}); requeued={}",
                    genome,
                    exc,
                    requeued,
                )

    async def render(self, genome: Genome) -> list[RenderedImage]:
        return await render_images(
            self.renderer,
            self.parameters,
            self.template.render(genome),
            self.placeholder_path,
        )

    async def _post_best(self, genome: Genome) -> None:
        images = await self.render(genome)
        content = "**Best result so far**"
        if not self.hide_prompt:
            content += f": `{self.template.render(genome)}`"
        # placeholder seeds reproduce nothing
        buttons = (
            [promote_button(genome, images[0].seed)]
            if self.allow_promotion and not images[0].placeholder
            else []
        )
        try:
            await self.channel.send(Post(content=content, images=images, buttons=buttons))
        except Exception as exc:  # pylint: disable=broad-except
            # best-so-far is advisory; the next generation publishes another
            self.failures += 1
            logger.warning("[FeedbackLoop] Posting best {} failed: {}", genome, exc)
            return
        self.posted += 1

    async def _post_candidate(self, genome: Genome) -> None:
        images = await self.render(genome)
        content = None if self.hide_prompt else f"`{self.template.render(genome)}`"
        await self.channel.send(
            Post(
                content=content,
                images=images,
                buttons=rating_buttons(genome, images[0].seed),
            )
        )
        self.posted += 1
        logger.debug("[FeedbackLoop] Posted candidate {}", genome)
