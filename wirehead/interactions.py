"""Entry point for clicked controls: token in, reply text out."""

from __future__ import annotations

from loguru import logger
from pydantic import BaseModel, Field

from wirehead.actions import PromoteAction, RateAction, decode_action
from wirehead.chat.base import Button
from wirehead.exceptions import (
    ActionDecodeError,
    ChannelError,
    NoActiveSessionError,
    RenderError,
    ValidationError,
)
from wirehead.feedback.components import promote_button
from wirehead.session.manager import SessionManager

__all__ = ["Reply", "handle_action"]

NO_SESSION_MESSAGE = "There is no active Wirehead session."


class Reply(BaseModel):
    """What the chat layer should show in response to a click."""

    content: str
    buttons: list[Button] = Field(default_factory=list)
    ok: bool = True


async def handle_action(
    manager: SessionManager,
    conversation_id: str,
    token: str,
    user: str | None = None,
) -> Reply:
    try:
        action = decode_action(token)
    except ActionDecodeError as exc:
        logger.warning("[Interactions] Rejected token {!r}: {}", token, exc)
        return Reply(content=f"Invalid action: {exc}", ok=False)

    if isinstance(action, RateAction):
        return _rate(manager, conversation_id, action, user)
    if isinstance(action, PromoteAction):
        return await _promote(manager, conversation_id, action, user)
    raise TypeError(f"unhandled action type: {type(action).__name__}")


def _rate(
    manager: SessionManager, conversation_id: str, action: RateAction, user: str | None
) -> Reply:
    session = manager.get(conversation_id)
    if session is None:
        return Reply(content=NO_SESSION_MESSAGE, ok=False)
    try:
        phenotype = session.phenotype(action.genome)
        manager.rate(conversation_id, action.genome, action.rating)
    except ValidationError as exc:
        return Reply(content=f"Invalid action: {exc}", ok=False)

    content = f"**Rating**: {action.rating.integer}"
    if user:
        content += f" by {user}"
    if not session.options.hide_prompt:
        content = f"`{phenotype}` | {content}"
    buttons = (
        [promote_button(action.genome, action.seed)]
        if session.options.allow_promotion
        else []
    )
    return Reply(content=content, buttons=buttons)


async def _promote(
    manager: SessionManager,
    conversation_id: str,
    action: PromoteAction,
    user: str | None,
) -> Reply:
    try:
        session = manager.require(conversation_id)
        if not session.options.allow_promotion:
            return Reply(content="Promotion is disabled for this session.", ok=False)
        images = await manager.promote(
            conversation_id, action.genome, action.seed, requested_by=user
        )
    except NoActiveSessionError:
        return Reply(content=NO_SESSION_MESSAGE, ok=False)
    except ValidationError as exc:
        return Reply(content=f"Invalid action: {exc}", ok=False)
    except (RenderError, ChannelError) as exc:
        logger.warning("[Interactions] Promotion of {} failed: {}", action.genome, exc)
        return Reply(content=f"Promotion failed: {exc}", ok=False)

    return Reply(
        content=f"Promoted to {session.promote_channel.name} ({len(images)} image(s))."
    )
