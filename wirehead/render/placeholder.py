from __future__ import annotations

import base64
from functools import lru_cache
from pathlib import Path

from loguru import logger

from wirehead.render.models import RenderedImage

# 1x1 PNG posted in place of a failed generation
_GENERATION_FAILED_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@lru_cache(maxsize=None)
def placeholder_bytes(path: str | None = None) -> bytes:
    """Raises OSError if ``path`` cannot be read."""
    if path:
        return Path(path).read_bytes()
    return base64.b64decode(_GENERATION_FAILED_PNG)


def placeholder_image(path: str | None = None) -> RenderedImage:
    """Configured placeholder, or the bundled one if it has become unreadable."""
    try:
        data = placeholder_bytes(path)
    except OSError as exc:
        logger.warning("[Render] Placeholder {} unreadable ({}), using bundled image", path, exc)
        data = placeholder_bytes(None)
    return RenderedImage(data=data, seed=0, placeholder=True)
