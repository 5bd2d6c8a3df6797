import threading
import time

import pytest

from wirehead.evolution.config import EvolutionConfig
from wirehead.evolution.engine import EvolutionEngine
from wirehead.fitness.notify import LatestGenome
from wirehead.fitness.store import FitnessStore


def _auto_rater(store, score_fn, stop):
    """Rate every pending genome until ``stop`` is set."""

    def loop():
        while not stop.is_set():
            for genome in store.drain_pending():
                store.rate(genome, score_fn(genome))
            time.sleep(0.001)

    thread = threading.Thread(target=loop, daemon=True)
    thread.start()
    return thread


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not reached in time"
        time.sleep(0.01)


def _engine(genome_length=4, gene_count=5, seed=0, poll_interval=0.01):
    store = FitnessStore(poll_interval=poll_interval)
    config = EvolutionConfig.derive(genome_length, gene_count, seed=seed)
    best = LatestGenome()
    return store, EvolutionEngine(store, config, best), best


def test_engine_evolves_with_automatic_ratings():
    store, engine, best = _engine()
    stop = threading.Event()
    rater = _auto_rater(store, lambda g: min(100, 5 * sum(g)), stop)
    try:
        engine.start()
        _wait_until(lambda: engine.metrics.total_generations >= 3)
    finally:
        store.close()
        stop.set()

    assert engine.join(timeout=2.0)
    rater.join(timeout=1.0)
    assert engine.error is None
    assert len(engine.population) == engine.config.population_size
    assert all(len(g) == 4 and all(0 <= x < 5 for x in g) for g in engine.population)
    assert best.peek() is not None
    # elitism: the best fitness never goes down between generations
    history = engine.metrics.best_fitness
    assert history == sorted(history)


def test_shutdown_stops_engine_waiting_on_ratings():
    store, engine, best = _engine()
    engine.start()
    _wait_until(lambda: store.pending_count() > 0)

    store.close()

    assert engine.join(timeout=1.0)
    assert engine.metrics.total_generations == 0
    assert best.peek() is None


def test_whole_population_is_requested_before_blocking():
    store, engine, _ = _engine()
    engine.start()
    try:
        _wait_until(lambda: store.pending_count() == len(set(engine.population)))
    finally:
        store.close()
    assert engine.join(timeout=1.0)


def test_shutdown_fitness_is_not_cached():
    store, engine, _ = _engine()
    engine.start()
    _wait_until(lambda: store.pending_count() > 0)
    store.close()
    engine.join(timeout=1.0)
    assert all(engine.fitness_of(g) is None for g in engine.population)


def test_initial_population_is_validated():
    store = FitnessStore()
    config = EvolutionConfig.derive(3, 2)
    with pytest.raises(ValueError):
        EvolutionEngine(store, config, LatestGenome(), initial_population=[(0, 1)])
    with pytest.raises(ValueError):
        EvolutionEngine(store, config, LatestGenome(), initial_population=[(0, 1, 2)])
    with pytest.raises(ValueError):
        EvolutionEngine(store, config, LatestGenome(), initial_population=[])
