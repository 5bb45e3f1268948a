"""Stochastic claim sampling for ordinary and large losses.

Ordinary claims follow a compound Poisson-Gamma process per policy: a Poisson
claim count, then one Gamma claim size per claim (or the severity model's
mean, for frequency-only diagnostics). Large losses are a single book-level
compound Poisson-Pareto process drawn once per portfolio iteration.

All sampling goes through an explicit ``numpy.random.Generator`` so results
are reproducible from a seed and independent streams can be handed to
parallel workers.
"""

import logging
from typing import NamedTuple, Optional, Tuple

import numpy as np
from scipy import stats

from .config import LargeLossConfig
from .models import PredictiveModel
from .parameters import PortfolioParameters, gamma_shape_rate, poisson_rate, severity_mean
from .portfolio import Policy

logger = logging.getLogger(__name__)


class ClaimDraw(NamedTuple):
    """Number of claims drawn and their total amount."""

    count: int
    amount: float


def sample_policy_claims(
    policy: Policy,
    frequency_model: PredictiveModel,
    severity_model: PredictiveModel,
    dispersion: float,
    simulate_claim_size: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> ClaimDraw:
    """Draw one period of ordinary claims for a single policy.

    The severity prediction is validated before the count is drawn, so an
    invalid model output fails even in iterations where the policy happens
    not to claim.

    Args:
        policy: The policy.
        frequency_model: Fitted frequency model.
        severity_model: Fitted severity model.
        dispersion: Severity model dispersion.
        simulate_claim_size: Draw Gamma claim sizes if true, otherwise
            charge the predicted mean for every claim.
        rng: Random generator. A fresh unseeded one is used if omitted.

    Returns:
        ``ClaimDraw(count, amount)``; ``(0, 0.0)`` when no claim occurs.

    Raises:
        InvalidParameterError: If the model outputs are invalid for this
            policy.
    """
    rng = rng if rng is not None else np.random.default_rng()

    lam = poisson_rate(frequency_model, policy)
    mu = severity_mean(severity_model, policy)
    if simulate_claim_size:
        shape, rate = gamma_shape_rate(mu, dispersion, policy_id=policy.policy_id)

    count = int(rng.poisson(lam))
    if count == 0:
        return ClaimDraw(0, 0.0)

    if simulate_claim_size:
        severities = rng.gamma(shape, 1.0 / rate, size=count)
        return ClaimDraw(count, float(severities.sum()))
    return ClaimDraw(count, count * mu)


def sample_portfolio_claims(
    parameters: PortfolioParameters,
    simulate_claim_size: bool,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """Draw ordinary claims for every policy at once.

    Same distributions as :func:`sample_policy_claims`, vectorized: one
    Poisson draw per policy, then one Gamma draw per claim, summed back onto
    the owning policy.

    Args:
        parameters: Precomputed per-policy parameters.
        simulate_claim_size: Draw Gamma claim sizes if true.
        rng: Random generator.

    Returns:
        ``(counts, amounts)`` arrays in portfolio order.

    Raises:
        ValueError: If claim sizes are requested but ``parameters`` were
            computed without Gamma parameters.
    """
    n_policies = len(parameters)
    counts = rng.poisson(parameters.poisson_rates)

    if not simulate_claim_size:
        return counts, counts * parameters.severity_means

    if parameters.gamma_rates is None or parameters.gamma_shape is None:
        raise ValueError("Gamma parameters are required to simulate claim sizes")

    claim_owner = np.repeat(np.arange(n_policies), counts)
    if claim_owner.size == 0:
        return counts, np.zeros(n_policies)

    severities = rng.gamma(parameters.gamma_shape, 1.0 / parameters.gamma_rates[claim_owner])
    amounts = np.bincount(claim_owner, weights=severities, minlength=n_policies)
    return counts, amounts


def large_loss_severities(
    large_loss_config: LargeLossConfig, n_samples: int, rng: np.random.Generator
) -> np.ndarray:
    """Draw Pareto large-loss sizes, each at least the threshold.

    Args:
        large_loss_config: Threshold (Pareto minimum) and shape factor (tail
            index).
        n_samples: Number of losses.
        rng: Random generator.

    Returns:
        Array of loss amounts.
    """
    if n_samples <= 0:
        return np.array([])

    result = stats.pareto.rvs(
        b=large_loss_config.shape_factor,
        scale=large_loss_config.threshold,
        size=n_samples,
        random_state=rng,
    )
    return np.asarray(result)


def sample_large_losses(
    large_loss_config: LargeLossConfig, rng: Optional[np.random.Generator] = None
) -> ClaimDraw:
    """Draw one year of book-level large losses.

    The configured rate is used as-is; scaling it by total book exposure is
    left to whoever builds the configuration.

    Args:
        large_loss_config: Large-loss process parameters.
        rng: Random generator. A fresh unseeded one is used if omitted.

    Returns:
        ``ClaimDraw(count, amount)``; ``(0, 0.0)`` when no large loss occurs.
    """
    rng = rng if rng is not None else np.random.default_rng()

    count = int(rng.poisson(large_loss_config.rate))
    if count == 0:
        return ClaimDraw(0, 0.0)

    severities = large_loss_severities(large_loss_config, count, rng)
    return ClaimDraw(count, float(severities.sum()))
