"""Replicate a run function into an empirical distribution of outcomes.

The run function itself never loops. This module supplies the two usual outer
loops:

- :func:`replicate` calls one run function ``n`` times in-process, so the
  whole batch is reproducible from that run function's seed.
- :func:`run_parallel` splits a batch into chunks, seeds each chunk with its
  own child of ``numpy.random.SeedSequence(seed)``, and runs the chunks in a
  process pool. Results depend on ``seed`` and ``n_chunks`` only, never on
  the number of workers or on scheduling order.
"""

from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field, fields
import logging
import time
from typing import Callable, Iterable, Iterator, List, Optional, Union

import numpy as np
import pandas as pd
from tqdm import tqdm

from .aggregation import SimulationResult
from .config import SimulationSettings
from .models import PredictiveModel
from .portfolio import Portfolio
from .simulator import Simulator, create_simulator

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [f.name for f in fields(SimulationResult)]


@dataclass
class SimulationBatch:
    """Ordered collection of iteration results."""

    results: List[SimulationResult] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[SimulationResult]:
        return iter(self.results)

    def __getitem__(self, index: int) -> SimulationResult:
        return self.results[index]

    def column(self, name: str) -> np.ndarray:
        """Values of one result field across the batch.

        Raises:
            KeyError: If ``name`` is not a :class:`SimulationResult` field.
        """
        if name not in RESULT_COLUMNS:
            raise KeyError(f"Unknown result field {name!r}; expected one of {RESULT_COLUMNS}")
        return np.array([getattr(r, name) for r in self.results])

    def to_dataframe(self) -> pd.DataFrame:
        """One row per iteration, one column per result field."""
        return pd.DataFrame([r.to_dict() for r in self.results], columns=RESULT_COLUMNS)

    @classmethod
    def concat(cls, batches: Iterable["SimulationBatch"]) -> "SimulationBatch":
        """Join batches in the order given."""
        results: List[SimulationResult] = []
        for batch in batches:
            results.extend(batch.results)
        return cls(results)


def replicate(
    run_fn: Callable[[], SimulationResult],
    n_iterations: int,
    progress: bool = False,
) -> SimulationBatch:
    """Call ``run_fn`` ``n_iterations`` times and collect the results.

    Args:
        run_fn: Zero-argument run function.
        n_iterations: Number of iterations.
        progress: Show a tqdm progress bar.

    Returns:
        The batch, in call order.

    Raises:
        ValueError: If ``n_iterations`` is negative.
    """
    if n_iterations < 0:
        raise ValueError(f"n_iterations must be non-negative, got {n_iterations}")

    start = time.time()
    iterator = range(n_iterations)
    if progress:
        iterator = tqdm(iterator, desc="Simulating portfolio")
    results = [run_fn() for _ in iterator]
    logger.info("Completed %d iterations in %.2f seconds", n_iterations, time.time() - start)
    return SimulationBatch(results)


def _run_chunk(
    simulator: Simulator,
    portfolio: Portfolio,
    simulate_claim_size: bool,
    seed: np.random.SeedSequence,
    n_iterations: int,
) -> List[SimulationResult]:
    """Run one independently seeded chunk.

    Module-level function for pickle compatibility in multiprocessing.
    """
    run_fn = simulator(portfolio, simulate_claim_size=simulate_claim_size, seed=seed)
    return [run_fn() for _ in range(n_iterations)]


def run_parallel(
    simulator: Simulator,
    portfolio: Portfolio,
    n_iterations: int,
    simulate_claim_size: bool = True,
    seed: Optional[Union[int, np.random.SeedSequence]] = None,
    n_workers: int = 1,
    n_chunks: Optional[int] = None,
    progress: bool = False,
) -> SimulationBatch:
    """Run a batch as independently seeded chunks, optionally in parallel.

    Args:
        simulator: Simulator to bind to the portfolio in each chunk.
        portfolio: The policies.
        n_iterations: Total iterations across all chunks.
        simulate_claim_size: Draw Gamma claim sizes if true.
        seed: Root seed. Each chunk receives one spawned child.
        n_workers: Worker processes. ``1`` runs chunks in-process.
        n_chunks: Number of chunks. Defaults to ``n_workers``.
        progress: Show a tqdm progress bar over chunks.

    Returns:
        The batch, chunks concatenated in chunk order.

    Raises:
        ValueError: If counts are inconsistent.
    """
    if n_iterations <= 0:
        raise ValueError(f"n_iterations must be positive, got {n_iterations}")
    if n_workers < 1:
        raise ValueError(f"n_workers must be at least 1, got {n_workers}")
    n_chunks = n_chunks if n_chunks is not None else n_workers
    if not 1 <= n_chunks <= n_iterations:
        raise ValueError(f"n_chunks must be between 1 and {n_iterations}, got {n_chunks}")

    root = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    child_seeds = root.spawn(n_chunks)
    sizes = [len(part) for part in np.array_split(np.arange(n_iterations), n_chunks)]

    logger.info(
        "Running %d iterations in %d chunks on %d workers", n_iterations, n_chunks, n_workers
    )
    start = time.time()
    chunk_results: List[List[SimulationResult]] = [[] for _ in range(n_chunks)]

    if n_workers == 1:
        chunk_ids: Iterable[int] = range(n_chunks)
        if progress:
            chunk_ids = tqdm(chunk_ids, desc="Processing chunks")
        for i in chunk_ids:
            chunk_results[i] = _run_chunk(
                simulator, portfolio, simulate_claim_size, child_seeds[i], sizes[i]
            )
    else:
        with ProcessPoolExecutor(max_workers=n_workers) as executor:
            futures = {
                executor.submit(
                    _run_chunk,
                    simulator,
                    portfolio,
                    simulate_claim_size,
                    child_seeds[i],
                    sizes[i],
                ): i
                for i in range(n_chunks)
            }
            pbar = tqdm(total=n_chunks, desc="Processing chunks") if progress else None
            for future in as_completed(futures):
                chunk_results[futures[future]] = future.result()
                if pbar is not None:
                    pbar.update(1)
            if pbar is not None:
                pbar.close()

    logger.info("Completed %d iterations in %.2f seconds", n_iterations, time.time() - start)
    return SimulationBatch([r for chunk in chunk_results for r in chunk])


def run_from_settings(
    frequency_model: PredictiveModel,
    severity_model: PredictiveModel,
    portfolio: Portfolio,
    settings: SimulationSettings,
    dispersion: Optional[float] = None,
    progress: bool = False,
) -> SimulationBatch:
    """Build a simulator from ``settings`` and run the batch it describes.

    Args:
        frequency_model: Fitted frequency model.
        severity_model: Fitted severity model.
        portfolio: The policies.
        settings: Large-loss process and batch parameters.
        dispersion: Severity dispersion override.
        progress: Show a tqdm progress bar.

    Returns:
        The batch.

    Raises:
        ConfigurationError: If the simulator cannot be built.
    """
    simulator = create_simulator(
        frequency_model, severity_model, settings.large_loss, dispersion=dispersion
    )
    return run_parallel(
        simulator,
        portfolio,
        n_iterations=settings.n_iterations,
        simulate_claim_size=settings.simulate_claim_size,
        seed=settings.seed,
        n_workers=settings.n_workers,
        n_chunks=settings.n_chunks,
        progress=progress,
    )
