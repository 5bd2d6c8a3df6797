from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerationParameters(BaseModel):
    """Base text-to-image parameters shared by every render in a session."""

    negative_prompt: str | None = Field(default=None)
    width: int = Field(default=256, gt=0)
    height: int = Field(default=256, gt=0)
    steps: int = Field(default=15, gt=0)
    cfg_scale: float = Field(default=8.0, gt=0)
    sampler: str = Field(default="Euler a")
    model: str | None = Field(
        default=None, description="Checkpoint name; None keeps the server's current model"
    )
    seed: int = Field(default=-1, description="-1 lets the server pick a random seed")
    batch_size: int = Field(default=1, gt=0)
    tiling: bool = False
    restore_faces: bool = False
    model_config = ConfigDict(frozen=True)


class RenderLimits(BaseModel):
    width_max: int = Field(default=1024, gt=0)
    height_max: int = Field(default=1024, gt=0)
    round_to: int = Field(default=64, gt=0)
    prepend_model_keyword: bool = Field(
        default=True,
        description="Prepend the model's bracketed keyword to prompts that lack it",
    )


class RenderProgress(BaseModel):
    fraction_complete: float = Field(default=0.0, ge=0)
    eta_seconds: float = Field(default=0.0)
    preview_image: bytes | None = None


class RenderedImage(BaseModel):
    data: bytes
    seed: int = 0
    placeholder: bool = Field(
        default=False, description="Stands in for a failed generation; the seed means nothing"
    )
    model_config = ConfigDict(frozen=True)

    @property
    def filename(self) -> str:
        return f"output_{self.seed}.png"


class RenderResult(BaseModel):
    images: list[bytes] = Field(default_factory=list)
    seeds: list[int] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def rendered(self) -> list[RenderedImage]:
        """Pair images with their seeds; images without a seed get 0."""
        return [
            RenderedImage(data=data, seed=self.seeds[idx] if idx < len(self.seeds) else 0)
            for idx, data in enumerate(self.images)
        ]
