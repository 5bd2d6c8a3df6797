"""Selection, crossover, mutation and reinsertion operators.

All operators are pure apart from the ``numpy`` generator they draw from;
fitness values are looked up in a ``genome -> fitness`` mapping supplied by
the engine.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import math

from loguru import logger
import numpy as np

from wirehead.genome import Genome

__all__ = [
    "rank_by_fitness",
    "MaximizeSelector",
    "MultiPointCrossover",
    "RandomValueMutator",
    "ElitistReinserter",
]


def rank_by_fitness(
    genomes: Sequence[Genome], fitness: Mapping[Genome, int]
) -> list[Genome]:
    """Best first. The sort is stable, so equal fitness keeps input order."""
    return sorted(genomes, key=lambda g: fitness[g], reverse=True)


class MaximizeSelector:
    """Pick the fittest fraction of the population and group it into parent sets.

    Candidates are taken best-first and cut into consecutive groups of
    ``group_size``; the last group wraps around to the top of the ranking.
    """

    def __init__(self, selection_ratio: float, group_size: int):
        if not 0 < selection_ratio <= 1:
            raise ValueError(f"selection_ratio must be in (0, 1], got {selection_ratio}")
        if group_size < 1:
            raise ValueError(f"group_size must be at least 1, got {group_size}")
        self.selection_ratio = selection_ratio
        self.group_size = group_size

    def __call__(
        self, population: Sequence[Genome], fitness: Mapping[Genome, int]
    ) -> list[list[Genome]]:
        if not population:
            return []
        ranked = rank_by_fitness(population, fitness)
        count = max(1, math.floor(len(ranked) * self.selection_ratio + 0.5))
        candidates = ranked[:count]

        groups: list[list[Genome]] = []
        for start in range(0, len(candidates), self.group_size):
            group = [
                candidates[(start + offset) % len(candidates)]
                for offset in range(self.group_size)
            ]
            groups.append(group)

        logger.debug(
            "[MaximizeSelector] {} candidates from {} -> {} groups of {}",
            len(candidates),
            len(population),
            len(groups),
            self.group_size,
        )
        return groups


class MultiPointCrossover:
    """Exchange gene segments between the members of a parent group.

    Each group yields one child per parent. Cut points split the genome into
    segments; child ``i`` takes segment ``s`` from parent ``(i + s) % n``.
    """

    def __init__(self, num_points: int):
        if num_points < 1:
            raise ValueError(f"num_points must be at least 1, got {num_points}")
        self.num_points = num_points

    def __call__(
        self, parents: Sequence[Genome], rng: np.random.Generator
    ) -> list[Genome]:
        if not parents:
            return []
        length = len(parents[0])
        if any(len(p) != length for p in parents):
            raise ValueError("all parents must have the same genome length")
        if length < 2 or len(parents) == 1:
            return [tuple(p) for p in parents]

        num_points = min(self.num_points, length - 1)
        cuts = np.sort(rng.choice(np.arange(1, length), size=num_points, replace=False))
        bounds = [0, *(int(c) for c in cuts), length]

        children: list[Genome] = []
        for child_idx in range(len(parents)):
            genes: list[int] = []
            for seg_idx in range(len(bounds) - 1):
                source = parents[(child_idx + seg_idx) % len(parents)]
                genes.extend(source[bounds[seg_idx] : bounds[seg_idx + 1]])
            children.append(tuple(genes))
        return children


class RandomValueMutator:
    """Replace each gene with a uniform in-range value with probability ``rate``."""

    def __init__(self, rate: float, gene_count: int):
        if not 0 <= rate <= 1:
            raise ValueError(f"rate must be in [0, 1], got {rate}")
        if gene_count < 1:
            raise ValueError(f"gene_count must be positive, got {gene_count}")
        self.rate = rate
        self.gene_count = gene_count

    def __call__(self, genome: Genome, rng: np.random.Generator) -> Genome:
        genes = np.asarray(genome, dtype=np.int64)
        mask = rng.random(len(genes)) < self.rate
        if not mask.any():
            return tuple(genome)
        genes[mask] = rng.integers(0, self.gene_count, size=int(mask.sum()))
        return tuple(int(g) for g in genes)


class ElitistReinserter:
    """Merge offspring into the population, keeping the best old individuals.

    The top ``ceil(ratio * N)`` of the current population survive; the rest of
    the slots go to the best offspring, then to the next best old individuals
    if there are not enough offspring.
    """

    def __init__(self, ratio: float):
        if not 0 < ratio <= 1:
            raise ValueError(f"ratio must be in (0, 1], got {ratio}")
        self.ratio = ratio

    def elite_count(self, population_size: int) -> int:
        return min(population_size, math.ceil(self.ratio * population_size))

    def __call__(
        self,
        population: Sequence[Genome],
        offspring: Sequence[Genome],
        fitness: Mapping[Genome, int],
    ) -> list[Genome]:
        size = len(population)
        ranked = rank_by_fitness(population, fitness)
        elites = self.elite_count(size)

        survivors = ranked[:elites]
        fillers = rank_by_fitness(offspring, fitness) + ranked[elites:]
        result = survivors + fillers[: size - elites]

        logger.debug(
            "[ElitistReinserter] kept {} elites, {} offspring offered, size {}",
            elites,
            len(offspring),
            size,
        )
        return result
