from __future__ import annotations

from wirehead.evolution.config import EvolutionConfig
from wirehead.evolution.engine import EvolutionEngine
from wirehead.evolution.metrics import EvolutionMetrics
