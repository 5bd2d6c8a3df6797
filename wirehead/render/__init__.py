from __future__ import annotations

from wirehead.render.base import Renderer, RenderJob
from wirehead.render.models import (
    GenerationParameters,
    RenderedImage,
    RenderLimits,
    RenderProgress,
    RenderResult,
)
