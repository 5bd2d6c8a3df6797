from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GENOME_LENGTH = 10


class EvolutionConfig(BaseModel):
    """Fixed genetic-algorithm constants for one session.

    Use :meth:`derive` rather than building this by hand; every value follows
    from the genome length.
    """

    genome_length: int = Field(ge=2)
    gene_count: int = Field(gt=0, description="Size of the tag table genes index into")
    population_size: int = Field(gt=0)
    parents_per_group: int = Field(default=3, gt=0)
    selection_ratio: float = Field(default=0.7, gt=0, le=1)
    crossover_points: int = Field(gt=0)
    mutation_rate: float = Field(ge=0, le=1)
    reinsertion_ratio: float = Field(default=0.7, gt=0, le=1)
    seed: int | None = Field(
        default=None, description="RNG seed (None = nondeterministic)"
    )
    model_config = ConfigDict(frozen=True)

    @classmethod
    def derive(
        cls,
        genome_length: int = DEFAULT_GENOME_LENGTH,
        gene_count: int = 1,
        *,
        seed: int | None = None,
    ) -> EvolutionConfig:
        if genome_length < 2:
            raise ValueError(f"genome_length must be at least 2, got {genome_length}")
        log_len = math.log(genome_length)
        return cls(
            genome_length=genome_length,
            gene_count=gene_count,
            population_size=int(10.0 * log_len),
            crossover_points=max(1, genome_length // 6),
            mutation_rate=0.05 / log_len,
            seed=seed,
        )

    @property
    def elite_count(self) -> int:
        return min(
            self.population_size,
            math.ceil(self.reinsertion_ratio * self.population_size),
        )

    @property
    def selection_count(self) -> int:
        return max(1, math.floor(self.population_size * self.selection_ratio + 0.5))
