from __future__ import annotations

import threading

from loguru import logger

from wirehead.genome import Genome

__all__ = ["LatestGenome"]


class LatestGenome:
    """Single-slot mailbox for the best genome of the latest generation.

    Publishing never blocks; an unread value is simply replaced.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Genome | None = None
        self.dropped = 0

    def publish(self, genome: Genome) -> None:
        with self._lock:
            if self._value is not None:
                self.dropped += 1
                logger.debug("[LatestGenome] Replacing unread best {}", self._value)
            self._value = genome

    def take(self) -> Genome | None:
        with self._lock:
            value, self._value = self._value, None
        return value

    def peek(self) -> Genome | None:
        with self._lock:
            return self._value
