from __future__ import annotations

from collections.abc import Iterable, Sequence
import threading

from loguru import logger
import numpy as np

from wirehead.evolution.config import EvolutionConfig
from wirehead.evolution.metrics import EvolutionMetrics
from wirehead.evolution.operators import (
    ElitistReinserter,
    MaximizeSelector,
    MultiPointCrossover,
    RandomValueMutator,
    rank_by_fitness,
)
from wirehead.fitness.notify import LatestGenome
from wirehead.fitness.store import FitnessStore
from wirehead.genome import Genome, random_genome

__all__ = ["EvolutionEngine"]


class EvolutionEngine:
    """
    Generational GA whose fitness function blocks on human ratings:
    - runs on its own thread; every evaluation goes through the FitnessStore,
    - never terminates on its own, only when the store's shutdown event is set,
    - publishes each generation's best genome to a LatestGenome slot.
    """

    def __init__(
        self,
        store: FitnessStore,
        config: EvolutionConfig,
        best: LatestGenome,
        initial_population: Sequence[Genome] | None = None,
    ):
        self.store = store
        self.config = config
        self.best = best
        self.shutdown = store.shutdown

        self._rng = np.random.default_rng(config.seed)
        self.selector = MaximizeSelector(config.selection_ratio, config.parents_per_group)
        self.crossover = MultiPointCrossover(config.crossover_points)
        self.mutator = RandomValueMutator(config.mutation_rate, config.gene_count)
        self.reinserter = ElitistReinserter(config.reinsertion_ratio)

        if initial_population is None:
            initial_population = [
                random_genome(config.genome_length, config.gene_count, self._rng)
                for _ in range(config.population_size)
            ]
        self.population: list[Genome] = list(initial_population)
        self._validate_population(self.population)

        # fitness seen during this run; never includes shutdown sentinels
        self._fitness: dict[Genome, int] = {}
        self.metrics = EvolutionMetrics()
        self.error: BaseException | None = None
        self._thread: threading.Thread | None = None

        logger.info(
            "[EvolutionEngine] Init | population={}, genome_length={}, genes={}, "
            "crossover_points={}, mutation_rate={:.4f}",
            len(self.population),
            config.genome_length,
            config.gene_count,
            config.crossover_points,
            config.mutation_rate,
        )

    # ---------------- Thread control ----------------

    def start(self, name: str = "wirehead-evolution") -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self.run, name=name, daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the engine thread; True once it has exited."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ---------------- Main loop ----------------

    def run(self) -> None:
        logger.info("[EvolutionEngine] Start")
        try:
            while not self.shutdown.is_set():
                if not self.step():
                    break
        except Exception as exc:  # pylint: disable=broad-except
            self.error = exc
            logger.exception("[EvolutionEngine] Generation failed: {}", exc)
        finally:
            logger.info(
                "[EvolutionEngine] Stopped after {} generation(s)",
                self.metrics.total_generations,
            )

    def step(self) -> bool:
        """Run one generation. Returns False if shutdown interrupted it."""
        population = self.population

        if not self._evaluate(population):
            return False
        values = [self._fitness[g] for g in population]
        generation_best = rank_by_fitness(population, self._fitness)[0]

        groups = self.selector(population, self._fitness)
        offspring = [
            self.mutator(child, self._rng)
            for group in groups
            for child in self.crossover(group, self._rng)
        ]
        self.metrics.offspring_created += len(offspring)

        if not self._evaluate(offspring):
            return False
        self.population = self.reinserter(population, offspring, self._fitness)

        self.metrics.record_generation(values)
        self.best.publish(generation_best)
        logger.info(
            "[EvolutionEngine] Generation {} | best={} avg={:.1f} offspring={}",
            self.metrics.total_generations,
            self.metrics.last_best,
            self.metrics.last_average,
            len(offspring),
        )
        return not self.shutdown.is_set()

    def _evaluate(self, genomes: Iterable[Genome]) -> bool:
        missing: list[Genome] = []
        for genome in dict.fromkeys(genomes):
            if genome in self._fitness:
                self.metrics.cache_hits += 1
            else:
                missing.append(genome)

        # put the whole batch in flight before blocking on any of it
        for genome in missing:
            self.store.request(genome)

        for genome in missing:
            value = self.store.request_fitness(genome)
            if self.shutdown.is_set():
                return False
            self._fitness[genome] = value
            self.metrics.evaluations_requested += 1
        return True

    def fitness_of(self, genome: Genome) -> int | None:
        return self._fitness.get(genome)

    def _validate_population(self, population: Sequence[Genome]) -> None:
        if not population:
            raise ValueError("initial population cannot be empty")
        for genome in population:
            if len(genome) != self.config.genome_length:
                raise ValueError(
                    f"genome {genome} has length {len(genome)}, expected {self.config.genome_length}"
                )
            if any(not 0 <= g < self.config.gene_count for g in genome):
                raise ValueError(
                    f"genome {genome} has genes outside [0, {self.config.gene_count})"
                )
