"""Simulation orchestrator: build once, bind a portfolio, run many times.

Usage::

    simulator = create_simulator(freq_model, sev_model, large_loss)
    run_fn = simulator(portfolio, simulate_claim_size=True, seed=42)
    results = [run_fn() for _ in range(10_000)]

:func:`create_simulator` validates everything that can be checked without a
portfolio and raises :class:`~loss_simulator.exceptions.ConfigurationError`
listing every problem. Binding a portfolio yields a :class:`RunFunction`, a
zero-argument callable that performs exactly one iteration per call. Looping,
parallelism and checkpointing are left to the caller (see
:mod:`loss_simulator.batch`).
"""

from dataclasses import dataclass
import logging
from typing import Any, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from .aggregation import SimulationResult, run_iteration
from .config import LargeLossConfig
from .exceptions import ConfigurationError
from .models import PredictiveModel
from .parameters import PortfolioParameters, portfolio_parameters
from .portfolio import Portfolio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatorConfig:
    """Everything a single iteration needs besides the portfolio and RNG.

    Attributes:
        frequency_model: Fitted frequency model.
        severity_model: Fitted severity model.
        dispersion: Severity model dispersion.
        large_loss: Book-level large-loss process.
        simulate_claim_size: Draw Gamma claim sizes, or use the mean.
    """

    frequency_model: PredictiveModel
    severity_model: PredictiveModel
    dispersion: float
    large_loss: LargeLossConfig
    simulate_claim_size: bool = True


class RunFunction:
    """Zero-argument callable performing one iteration against a fixed portfolio.

    Distribution parameters are computed on the first successful call and
    reused, since models and portfolio are read-only for the life of the
    run function. A failing call leaves nothing cached, so every later call
    fails the same way.

    Args:
        portfolio: The policies.
        config: Simulation config.
        rng: Generator owned by this run function.
    """

    def __init__(self, portfolio: Portfolio, config: SimulatorConfig, rng: np.random.Generator):
        self.portfolio = portfolio
        self.config = config
        self.rng = rng
        self.n_runs = 0
        self._parameters: Optional[PortfolioParameters] = None

    @property
    def parameters(self) -> PortfolioParameters:
        """Per-policy distribution parameters, computed on first access."""
        if self._parameters is None:
            self._parameters = portfolio_parameters(
                self.config.frequency_model,
                self.config.severity_model,
                self.config.dispersion,
                self.portfolio,
                simulate_claim_size=self.config.simulate_claim_size,
            )
        return self._parameters

    def __call__(self) -> SimulationResult:
        result = run_iteration(self.portfolio, self.config, self.rng, self.parameters)
        self.n_runs += 1
        return result

    def __repr__(self) -> str:
        return (
            f"RunFunction(n_policies={len(self.portfolio)}, "
            f"simulate_claim_size={self.config.simulate_claim_size}, n_runs={self.n_runs})"
        )


class Simulator:
    """A validated model set waiting to be bound to a portfolio.

    Instances are produced by :func:`create_simulator`; call one with a
    portfolio to obtain a :class:`RunFunction`.
    """

    def __init__(
        self,
        frequency_model: PredictiveModel,
        severity_model: PredictiveModel,
        dispersion: float,
        large_loss: LargeLossConfig,
    ):
        self.frequency_model = frequency_model
        self.severity_model = severity_model
        self.dispersion = dispersion
        self.large_loss = large_loss

    def config(self, simulate_claim_size: bool = True) -> SimulatorConfig:
        """The immutable config a bound run function will use."""
        return SimulatorConfig(
            frequency_model=self.frequency_model,
            severity_model=self.severity_model,
            dispersion=self.dispersion,
            large_loss=self.large_loss,
            simulate_claim_size=bool(simulate_claim_size),
        )

    def __call__(
        self,
        portfolio: Union[Portfolio, pd.DataFrame],
        simulate_claim_size: bool = True,
        seed: Optional[Union[int, np.random.SeedSequence]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> RunFunction:
        """Bind a portfolio and return a one-iteration run function.

        Args:
            portfolio: The policies, as a :class:`Portfolio` or a frame with
                the default column names.
            simulate_claim_size: Draw Gamma claim sizes if true; otherwise
                every claim costs the severity model's mean.
            seed: Seed for a new generator owned by the run function.
            rng: An existing generator to use instead of ``seed``.

        Returns:
            The run function.

        Raises:
            ValueError: If both ``seed`` and ``rng`` are given.
            TypeError: If ``portfolio`` is neither a Portfolio nor a frame.
        """
        if seed is not None and rng is not None:
            raise ValueError("Pass either seed or rng, not both")
        if isinstance(portfolio, pd.DataFrame):
            portfolio = Portfolio(portfolio)
        elif not isinstance(portfolio, Portfolio):
            raise TypeError(f"Expected Portfolio or DataFrame, got {type(portfolio).__name__}")

        generator = rng if rng is not None else np.random.default_rng(seed)
        return RunFunction(portfolio, self.config(simulate_claim_size), generator)

    def __repr__(self) -> str:
        return (
            f"Simulator(frequency_model={self.frequency_model!r}, "
            f"severity_model={self.severity_model!r}, dispersion={self.dispersion}, "
            f"large_loss={self.large_loss!r})"
        )


def _model_issues(name: str, model: Any) -> List[str]:
    if model is None:
        return [f"{name} is required"]
    if not callable(getattr(model, "predict", None)):
        return [f"{name} must provide a callable predict() (got {type(model).__name__})"]
    return []


def create_simulator(
    frequency_model: PredictiveModel,
    severity_model: PredictiveModel,
    large_loss_config: Union[LargeLossConfig, Mapping[str, float]],
    dispersion: Optional[float] = None,
) -> Simulator:
    """Validate a model set and large-loss process and build a simulator.

    Args:
        frequency_model: Fitted frequency model.
        severity_model: Fitted severity model.
        large_loss_config: A :class:`LargeLossConfig` or a mapping with
            ``threshold``, ``rate`` and ``shape_factor``.
        dispersion: Severity dispersion. Defaults to
            ``severity_model.dispersion``.

    Returns:
        A simulator ready to be bound to a portfolio.

    Raises:
        ConfigurationError: If a model is missing or lacks ``predict``, the
            dispersion is missing or not positive, or a large-loss scalar is
            invalid. All problems are reported together.
    """
    issues = _model_issues("frequency_model", frequency_model)
    issues += _model_issues("severity_model", severity_model)

    if dispersion is None:
        dispersion = getattr(severity_model, "dispersion", None)
    if dispersion is None:
        issues.append("dispersion is required: pass it or set severity_model.dispersion")
    else:
        try:
            dispersion = float(dispersion)
        except (TypeError, ValueError):
            issues.append(f"dispersion must be a number (got {dispersion!r})")
        else:
            if not np.isfinite(dispersion) or dispersion <= 0:
                issues.append(f"dispersion must be positive (got {dispersion!r})")

    large_loss = None
    try:
        large_loss = LargeLossConfig.coerce(large_loss_config)
    except ConfigurationError as e:
        issues.extend(e.issues)

    if issues:
        raise ConfigurationError(issues)

    logger.info(
        "Simulator created: dispersion=%s, large losses rate=%s threshold=%s shape=%s",
        dispersion,
        large_loss.rate,
        large_loss.threshold,
        large_loss.shape_factor,
    )
    return Simulator(frequency_model, severity_model, dispersion, large_loss)
