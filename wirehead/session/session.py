from __future__ import annotations

import asyncio
import contextlib
import threading

from loguru import logger

from wirehead.actions import MAX_GENOME_LENGTH, Rating
from wirehead.chat.base import Channel, Post
from wirehead.evolution.config import EvolutionConfig
from wirehead.evolution.engine import EvolutionEngine
from wirehead.exceptions import (
    ActionDecodeError,
    ActionEncodeError,
    RenderError,
    ValidationError,
)
from wirehead.feedback.loop import FeedbackLoop
from wirehead.fitness.notify import LatestGenome
from wirehead.fitness.store import FitnessStore
from wirehead.genome import Genome
from wirehead.render.base import Renderer
from wirehead.render.models import RenderedImage
from wirehead.render.placeholder import placeholder_bytes
from wirehead.session.options import SessionOptions
from wirehead.tags import PromptTemplate, TagTable

__all__ = ["Session"]


def _check_options(options: SessionOptions) -> None:
    """Reject options that would leave the feedback loop unable to post.

    Raises:
        ValidationError: with the reason; nothing has been started yet.
    """
    if options.genome_length > MAX_GENOME_LENGTH:
        raise ActionEncodeError(
            f"genome_length {options.genome_length} does not fit in an action token "
            f"(at most {MAX_GENOME_LENGTH})"
        )
    if options.placeholder_image:
        try:
            placeholder_bytes(options.placeholder_image)
        except OSError as exc:
            raise ValidationError(
                f"cannot read placeholder image {options.placeholder_image}: {exc}"
            ) from exc


class Session:
    """One running search: an evolution thread plus a feedback task.

    Construction wires everything but starts nothing; :meth:`start` launches
    both loops and :meth:`stop` asks them to finish.
    """

    def __init__(
        self,
        *,
        conversation_id: str,
        options: SessionOptions,
        tags: TagTable,
        renderer: Renderer,
        channel: Channel,
        promote_channel: Channel | None = None,
    ):
        _check_options(options)

        self.conversation_id = conversation_id
        self.options = options
        self.tags = tags
        self.renderer = renderer
        self.channel = channel
        self.promote_channel = promote_channel or channel

        self.shutdown = threading.Event()
        self.store = FitnessStore(self.shutdown, poll_interval=options.fitness_poll_interval)
        self.best = LatestGenome()
        self.template = PromptTemplate(tags, options.prefix, options.suffix)
        self.evolution_config = EvolutionConfig.derive(
            options.genome_length, len(tags), seed=options.seed
        )
        self.engine = EvolutionEngine(self.store, self.evolution_config, self.best)
        self.feedback = FeedbackLoop(
            store=self.store,
            best=self.best,
            renderer=renderer,
            channel=channel,
            template=self.template,
            parameters=options.generation,
            hide_prompt=options.hide_prompt,
            allow_promotion=options.allow_promotion,
            interval=options.feedback_interval,
            placeholder_path=options.placeholder_image,
        )
        self._task: asyncio.Task | None = None

    # ---------------- Lifecycle ----------------

    def start(self) -> None:
        if self._task is not None:
            return
        self.engine.start(name=f"wirehead-evolution-{self.conversation_id}")
        self._task = asyncio.create_task(
            self.feedback.run(), name=f"wirehead-feedback-{self.conversation_id}"
        )
        logger.info(
            "[Session] {} started | tags={}, population={}",
            self.conversation_id,
            len(self.tags),
            self.evolution_config.population_size,
        )

    def stop(self) -> None:
        """Set the shutdown flag; both loops exit at their next check."""
        if not self.shutdown.is_set():
            logger.info("[Session] {} stopping", self.conversation_id)
        self.store.close()

    async def wait_stopped(self, timeout: float | None = None) -> bool:
        """Wait for both loops to exit. Returns False on timeout."""
        stopped = True
        if self._task is not None and not self._task.done():
            done, _ = await asyncio.wait({self._task}, timeout=timeout)
            stopped = bool(done)
        if self._task is not None and self._task.done():
            with contextlib.suppress(asyncio.CancelledError):
                exc = self._task.exception()
                if exc is not None:
                    logger.error("[Session] {} feedback task failed: {}", self.conversation_id, exc)
        stopped = await asyncio.to_thread(self.engine.join, timeout) and stopped
        return stopped

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def is_running(self) -> bool:
        return not self.shutdown.is_set() and (
            self.engine.is_running() or (self._task is not None and not self._task.done())
        )

    # ---------------- Interaction ----------------

    def validate_genome(self, genome: Genome) -> None:
        if len(genome) != self.evolution_config.genome_length:
            raise ActionDecodeError(
                f"genome has {len(genome)} genes, this session uses {self.evolution_config.genome_length}"
            )
        if any(not 0 <= gene < len(self.tags) for gene in genome):
            raise ActionDecodeError(
                f"genome {genome} does not fit a tag table of {len(self.tags)} tags"
            )

    def phenotype(self, genome: Genome) -> str:
        self.validate_genome(genome)
        return self.template.render(genome)

    def rate(self, genome: Genome, rating: Rating) -> int:
        self.validate_genome(genome)
        score = rating.score
        self.store.rate(genome, score)
        logger.info("[Session] {} rated {} -> {}", self.conversation_id, genome, score)
        return score

    async def promote(
        self, genome: Genome, seed: int, requested_by: str | None = None
    ) -> list[RenderedImage]:
        """Re-render ``genome`` with a fixed seed and post it to the promotion channel.

        Raises:
            RenderError: if the generation fails.
            ChannelError: if the result could not be posted.
        """
        prompt = self.phenotype(genome)
        parameters = self.options.generation.model_copy(update={"seed": seed})

        job = await self.renderer.submit(parameters, prompt)
        result_task = asyncio.ensure_future(job.result())
        max_fraction = 0.0
        try:
            while not result_task.done():
                try:
                    progress = await job.poll_progress()
                except RenderError as exc:
                    logger.debug("[Session] progress poll failed: {}", exc)
                else:
                    max_fraction = max(max_fraction, progress.fraction_complete)
                    logger.info(
                        "[Session] Promoting `{}`: {:.02f}% complete ({:.02f}s remaining)",
                        prompt,
                        max_fraction * 100.0,
                        progress.eta_seconds,
                    )
                await asyncio.wait({result_task}, timeout=self.options.progress_interval)
            result = result_task.result()
        finally:
            if not result_task.done():
                result_task.cancel()

        images = result.rendered()
        if not images:
            raise RenderError("promotion returned no images")

        content = f"`{prompt}` (seed {seed})"
        if requested_by:
            content += f" | promoted by {requested_by}"
        await self.promote_channel.send(Post(content=content, images=images))
        return images
