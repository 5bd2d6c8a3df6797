from __future__ import annotations

from wirehead.fitness.notify import LatestGenome
from wirehead.fitness.store import (
    HIGHEST_FITNESS,
    LOWEST_FITNESS,
    SHUTDOWN_FITNESS,
    FitnessStore,
    Score,
    ScoreState,
)
