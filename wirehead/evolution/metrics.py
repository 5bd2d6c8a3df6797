from __future__ import annotations

from pydantic import BaseModel, Field


class EvolutionMetrics(BaseModel):
    """Counters kept by the evolution engine."""

    total_generations: int = Field(
        default=0, description="Total number of generations completed"
    )
    evaluations_requested: int = Field(
        default=0, description="Fitness values waited on (cache misses)"
    )
    cache_hits: int = Field(
        default=0, description="Fitness lookups answered from this run's cache"
    )
    offspring_created: int = Field(
        default=0, description="Total offspring produced by crossover"
    )
    best_fitness: list[int] = Field(
        default_factory=list, description="Best fitness of each generation"
    )
    average_fitness: list[float] = Field(
        default_factory=list, description="Mean fitness of each generation"
    )

    def record_generation(self, fitness_values: list[int]) -> None:
        self.total_generations += 1
        if not fitness_values:
            return
        self.best_fitness.append(max(fitness_values))
        self.average_fitness.append(sum(fitness_values) / len(fitness_values))

    @property
    def last_best(self) -> int | None:
        return self.best_fitness[-1] if self.best_fitness else None

    @property
    def last_average(self) -> float | None:
        return self.average_fitness[-1] if self.average_fitness else None
