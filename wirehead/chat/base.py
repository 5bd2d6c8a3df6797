from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from wirehead.render.models import RenderedImage


class ButtonStyle(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"


class Button(BaseModel):
    label: str
    action: str = Field(description="Action token returned when the button is clicked")
    style: ButtonStyle = ButtonStyle.SECONDARY
    model_config = ConfigDict(frozen=True)


class Post(BaseModel):
    content: str | None = None
    images: list[RenderedImage] = Field(default_factory=list)
    buttons: list[Button] = Field(default_factory=list)


class Channel(ABC):
    """Somewhere posts end up: a chat channel, a directory, a test recorder."""

    name: str = "channel"

    @abstractmethod
    async def send(self, post: Post) -> None:
        """Publish ``post``.

        Raises:
            ChannelError: if the post could not be delivered.
        """
