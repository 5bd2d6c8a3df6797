from __future__ import annotations

from pydantic import BaseModel, Field

from wirehead.actions import MAX_GENOME_LENGTH
from wirehead.evolution.config import DEFAULT_GENOME_LENGTH
from wirehead.feedback.loop import DEFAULT_FEEDBACK_INTERVAL
from wirehead.fitness.store import DEFAULT_POLL_INTERVAL
from wirehead.render.models import GenerationParameters


class SessionOptions(BaseModel):
    """Everything a start command can choose for a session."""

    tags: str | None = Field(
        default=None,
        description="URL or path of a newline-separated tag list (None = bundled default)",
    )
    prefix: str | None = Field(default=None, description="Fixed phrase before the genes")
    suffix: str | None = Field(default=None, description="Fixed phrase after the genes")
    hide_prompt: bool = Field(default=False, description="Do not show prompts in posts")
    allow_promotion: bool = Field(
        default=False,
        description="Offer a control to re-render a genome as a standalone generation",
    )
    generation: GenerationParameters = Field(default_factory=GenerationParameters)
    genome_length: int = Field(default=DEFAULT_GENOME_LENGTH, ge=2, le=MAX_GENOME_LENGTH)
    feedback_interval: float = Field(default=DEFAULT_FEEDBACK_INTERVAL, gt=0)
    fitness_poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    progress_interval: float = Field(
        default=0.25, gt=0, description="Seconds between progress polls when promoting"
    )
    placeholder_image: str | None = Field(
        default=None, description="PNG posted when a render fails (None = bundled)"
    )
    seed: int | None = Field(default=None, description="Seed for the genetic algorithm")
