from __future__ import annotations

import asyncio
import threading

import httpx
from loguru import logger

from wirehead.actions import Rating
from wirehead.chat.base import Channel
from wirehead.exceptions import NoActiveSessionError, SessionAlreadyRunningError
from wirehead.genome import Genome
from wirehead.render.base import Renderer
from wirehead.render.models import RenderedImage
from wirehead.session.options import SessionOptions
from wirehead.session.session import Session
from wirehead.tags import load_tag_table

__all__ = ["SessionManager"]


class SessionManager:
    """Registry of running sessions, at most one per conversation.

    Sessions share nothing but the renderer. A stopped session is kept aside
    until it has fully wound down so a new one for the same conversation
    never overlaps it.
    """

    def __init__(
        self,
        renderer: Renderer,
        *,
        http_client: httpx.AsyncClient | None = None,
        stop_timeout: float = 5.0,
    ):
        self.renderer = renderer
        self.http_client = http_client
        self.stop_timeout = stop_timeout
        self._sessions: dict[str, Session] = {}
        self._stopping: dict[str, Session] = {}
        self._lock = threading.Lock()

    # ---------------- Lifecycle ----------------

    async def start(
        self,
        conversation_id: str,
        options: SessionOptions | None = None,
        *,
        channel: Channel,
        promote_channel: Channel | None = None,
    ) -> Session:
        """Load the tag table and launch a session for ``conversation_id``.

        Raises:
            SessionAlreadyRunningError: a session is already active there.
            TagTableError: the tag table could not be loaded; nothing was started.
        """
        options = options or SessionOptions()
        with self._lock:
            if conversation_id in self._sessions:
                raise SessionAlreadyRunningError(
                    f"a session is already running for {conversation_id}"
                )
            previous = self._stopping.pop(conversation_id, None)

        if previous is not None:
            logger.info("[SessionManager] Waiting for previous session of {}", conversation_id)
            await previous.wait_stopped()

        tags = await load_tag_table(options.tags, client=self.http_client)
        session = Session(
            conversation_id=conversation_id,
            options=options,
            tags=tags,
            renderer=self.renderer,
            channel=channel,
            promote_channel=promote_channel,
        )

        with self._lock:
            # another start may have won while the tags were loading
            if conversation_id in self._sessions:
                raise SessionAlreadyRunningError(
                    f"a session is already running for {conversation_id}"
                )
            self._sessions[conversation_id] = session
        session.start()
        return session

    def stop(self, conversation_id: str) -> bool:
        """Ask the session to shut down. Returns False if none was running."""
        with self._lock:
            session = self._sessions.pop(conversation_id, None)
            if session is None:
                return False
            self._stopping[conversation_id] = session
        session.stop()
        logger.info("[SessionManager] Stopped session for {}", conversation_id)
        return True

    async def close(self) -> None:
        """Stop every session and wait for them to wind down."""
        with self._lock:
            conversation_ids = list(self._sessions)
        for conversation_id in conversation_ids:
            self.stop(conversation_id)

        with self._lock:
            stopping, self._stopping = list(self._stopping.values()), {}
        if stopping:
            results = await asyncio.gather(
                *(s.wait_stopped(self.stop_timeout) for s in stopping),
                return_exceptions=True,
            )
            for session, result in zip(stopping, results):
                if result is not True:
                    logger.warning(
                        "[SessionManager] Session {} did not stop cleanly: {}",
                        session.conversation_id,
                        result,
                    )
        logger.info("[SessionManager] Closed")

    # ---------------- Lookup ----------------

    def get(self, conversation_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(conversation_id)

    def require(self, conversation_id: str) -> Session:
        session = self.get(conversation_id)
        if session is None:
            raise NoActiveSessionError("There is no active Wirehead session.")
        return session

    def __contains__(self, conversation_id: str) -> bool:
        return self.get(conversation_id) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ---------------- Feedback ----------------

    def rate(self, conversation_id: str, genome: Genome, rating: Rating) -> int | None:
        """Forward a rating; ignored (returns None) when no session is active."""
        session = self.get(conversation_id)
        if session is None:
            logger.debug(
                "[SessionManager] Ignoring rating for {} without a session", conversation_id
            )
            return None
        return session.rate(genome, rating)

    async def promote(
        self,
        conversation_id: str,
        genome: Genome,
        seed: int,
        requested_by: str | None = None,
    ) -> list[RenderedImage]:
        session = self.require(conversation_id)
        return await session.promote(genome, seed, requested_by=requested_by)
