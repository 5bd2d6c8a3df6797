from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import threading

from loguru import logger

from wirehead.genome import Genome

__all__ = [
    "FitnessStore",
    "Score",
    "ScoreState",
    "LOWEST_FITNESS",
    "HIGHEST_FITNESS",
    "SHUTDOWN_FITNESS",
    "DEFAULT_POLL_INTERVAL",
]

LOWEST_FITNESS = 0
HIGHEST_FITNESS = 100
# returned to a blocked evaluator once the session shuts down
SHUTDOWN_FITNESS = LOWEST_FITNESS

DEFAULT_POLL_INTERVAL = 0.1


class ScoreState(Enum):
    UNKNOWN = "unknown"
    REQUESTED = "requested"
    READY = "ready"


@dataclass(frozen=True)
class Score:
    state: ScoreState
    value: int | None = None

    @classmethod
    def unknown(cls) -> Score:
        return cls(ScoreState.UNKNOWN)

    @classmethod
    def requested(cls) -> Score:
        return cls(ScoreState.REQUESTED)

    @classmethod
    def ready(cls, value: int) -> Score:
        return cls(ScoreState.READY, value)

    @property
    def is_ready(self) -> bool:
        return self.state is ScoreState.READY


class FitnessStore:
    """Rendezvous between the blocking evaluator and the asynchronous feedback side.

    The evaluator thread calls :meth:`request_fitness` and blocks until some
    other context calls :meth:`rate` for the same genome. Genomes that have been
    requested but not yet handed out are kept in a pending set that the
    feedback loop empties with :meth:`drain_pending`.

    Scores live behind a ``threading.Condition`` and the pending set behind its
    own lock. The only nesting is score lock -> pending lock.
    """

    def __init__(
        self,
        shutdown: threading.Event | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.shutdown = shutdown or threading.Event()
        self.poll_interval = poll_interval

        # genome -> fitness; None while requested
        self._scores: dict[Genome, int | None] = {}
        self._scores_changed = threading.Condition(threading.Lock())
        self._pending: set[Genome] = set()
        self._pending_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Evaluator side
    # ------------------------------------------------------------------

    def request(self, genome: Genome) -> Score:
        """Register interest in ``genome`` without blocking.

        The first request for a genome creates a ``Requested`` entry and puts it
        in the pending set; later requests only report the current score.
        """
        with self._scores_changed:
            if genome in self._scores:
                value = self._scores[genome]
                return Score.requested() if value is None else Score.ready(value)

            self._scores[genome] = None
            with self._pending_lock:
                self._pending.add(genome)

        logger.debug("[FitnessStore] Requested {}", genome)
        return Score.requested()

    def request_fitness(self, genome: Genome) -> int:
        """Block until ``genome`` is rated, or until shutdown.

        Returns ``SHUTDOWN_FITNESS`` once the shutdown event is observed; the
        wait is re-checked at least every ``poll_interval`` seconds.
        """
        score = self.request(genome)
        if score.is_ready:
            return score.value

        with self._scores_changed:
            while True:
                if self.shutdown.is_set():
                    return SHUTDOWN_FITNESS
                value = self._scores.get(genome)
                if value is not None:
                    return value
                self._scores_changed.wait(timeout=self.poll_interval)

    # ------------------------------------------------------------------
    # Feedback side
    # ------------------------------------------------------------------

    def rate(self, genome: Genome, value: int) -> None:
        """Set ``genome``'s fitness. A later rating overwrites an earlier one."""
        if not LOWEST_FITNESS <= value <= HIGHEST_FITNESS:
            raise ValueError(
                f"fitness must be within [{LOWEST_FITNESS}, {HIGHEST_FITNESS}], got {value}"
            )
        with self._scores_changed:
            previous = self._scores.get(genome)
            self._scores[genome] = value
            with self._pending_lock:
                self._pending.discard(genome)
            self._scores_changed.notify_all()

        if previous is not None and previous != value:
            logger.debug("[FitnessStore] Re-rated {}: {} -> {}", genome, previous, value)

    def drain_pending(self) -> set[Genome]:
        """Atomically take every pending genome."""
        with self._pending_lock:
            drained, self._pending = self._pending, set()
        return drained

    def requeue(self, genome: Genome) -> bool:
        """Put a genome that is still waiting for a rating back into the pending set."""
        with self._scores_changed:
            if genome not in self._scores or self._scores[genome] is not None:
                return False
            with self._pending_lock:
                self._pending.add(genome)
        return True

    # ------------------------------------------------------------------
    # Inspection / teardown
    # ------------------------------------------------------------------

    def score_of(self, genome: Genome) -> Score:
        with self._scores_changed:
            if genome not in self._scores:
                return Score.unknown()
            value = self._scores[genome]
        return Score.requested() if value is None else Score.ready(value)

    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def close(self) -> None:
        """Signal shutdown and wake every blocked evaluator."""
        self.shutdown.set()
        with self._scores_changed:
            self._scores_changed.notify_all()
