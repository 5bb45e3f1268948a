"""Translate fitted model predictions into distribution parameters.

A frequency model's prediction is used directly as a Poisson mean. A
severity model's prediction ``mu`` and its dispersion ``phi`` become a Gamma
distribution with::

    shape = 1 / phi
    rate  = shape / mu

so that the Gamma mean is ``mu`` and its variance is ``phi * mu**2``.

Every function here validates what the model returned and raises
:class:`~loss_simulator.exceptions.InvalidParameterError` naming the policy
at fault.
"""

from dataclasses import dataclass
import logging
from typing import Any, Optional, Tuple

import numpy as np

from .exceptions import InvalidParameterError
from .models import PredictiveModel
from .portfolio import Policy, Portfolio

logger = logging.getLogger(__name__)


def gamma_shape_rate(
    mean: float, dispersion: float, policy_id: Optional[Any] = None
) -> Tuple[float, float]:
    """Convert a Gamma mean and dispersion into shape and rate.

    Args:
        mean: Expected claim amount.
        dispersion: Gamma dispersion.
        policy_id: Identifier reported on failure.

    Returns:
        ``(shape, rate)`` with ``shape == 1 / dispersion`` exactly.

    Raises:
        InvalidParameterError: If ``mean <= 0`` or ``dispersion <= 0`` (or
            either is non-finite).
    """
    if not np.isfinite(dispersion) or dispersion <= 0:
        raise InvalidParameterError(
            f"dispersion must be positive, got {dispersion}",
            policy_id=policy_id,
            parameter="dispersion",
            value=dispersion,
        )
    if not np.isfinite(mean) or mean <= 0:
        raise InvalidParameterError(
            f"predicted severity mean must be positive, got {mean}",
            policy_id=policy_id,
            parameter="mean",
            value=mean,
        )
    shape = 1.0 / dispersion
    return shape, shape / mean


def _predict_one(model: PredictiveModel, policy: Policy) -> float:
    prediction = np.asarray(model.predict(policy.to_frame()), dtype=float).ravel()
    if prediction.size != 1:
        raise InvalidParameterError(
            f"model returned {prediction.size} predictions for a single policy",
            policy_id=policy.policy_id,
        )
    return float(prediction[0])


def poisson_rate(frequency_model: PredictiveModel, policy: Policy) -> float:
    """Expected claim count for one policy over its exposure period.

    Args:
        frequency_model: Fitted frequency model; its offset handling scales
            the prediction with exposure.
        policy: The policy.

    Returns:
        Poisson mean, ``>= 0``. Policies with zero exposure return 0.0
        without consulting the model.

    Raises:
        InvalidParameterError: If the model predicts a negative or
            non-finite rate.
    """
    if policy.exposure == 0:
        return 0.0
    lam = _predict_one(frequency_model, policy)
    if not np.isfinite(lam) or lam < 0:
        raise InvalidParameterError(
            f"predicted claim frequency must be finite and non-negative, got {lam}",
            policy_id=policy.policy_id,
            parameter="frequency",
            value=lam,
        )
    return lam


def severity_mean(severity_model: PredictiveModel, policy: Policy) -> float:
    """Expected claim amount for one policy, validated to be positive."""
    mu = _predict_one(severity_model, policy)
    if not np.isfinite(mu) or mu <= 0:
        raise InvalidParameterError(
            f"predicted severity mean must be positive, got {mu}",
            policy_id=policy.policy_id,
            parameter="mean",
            value=mu,
        )
    return mu


def gamma_params(
    severity_model: PredictiveModel, dispersion: float, policy: Policy
) -> Tuple[float, float]:
    """Gamma shape and rate for one policy's claim sizes.

    Args:
        severity_model: Fitted severity model.
        dispersion: Dispersion of the fitted severity model.
        policy: The policy.

    Returns:
        ``(shape, rate)``.

    Raises:
        InvalidParameterError: If the predicted mean or the dispersion is
            not positive.
    """
    mu = _predict_one(severity_model, policy)
    return gamma_shape_rate(mu, dispersion, policy_id=policy.policy_id)


def _first_offender(portfolio: Portfolio, bad: np.ndarray) -> Any:
    return portfolio.policy_ids[int(np.flatnonzero(bad)[0])]


def _predict_all(model: PredictiveModel, portfolio: Portfolio, what: str) -> np.ndarray:
    prediction = np.asarray(model.predict(portfolio.frame), dtype=float).ravel()
    if prediction.shape != (len(portfolio),):
        raise InvalidParameterError(
            f"{what} model returned {prediction.size} predictions for "
            f"{len(portfolio)} policies"
        )
    return prediction


def poisson_rates(frequency_model: PredictiveModel, portfolio: Portfolio) -> np.ndarray:
    """Vectorized :func:`poisson_rate` over a whole portfolio.

    Returns:
        Array of Poisson means in portfolio order.

    Raises:
        InvalidParameterError: Naming the first policy with a negative or
            non-finite rate.
    """
    if len(portfolio) == 0:
        return np.zeros(0)

    rates = _predict_all(frequency_model, portfolio, "frequency")
    in_force = portfolio.exposure > 0
    rates = np.where(in_force, rates, 0.0)

    bad = ~np.isfinite(rates) | (rates < 0)
    if bad.any():
        value = float(rates[bad][0])
        raise InvalidParameterError(
            f"predicted claim frequency must be finite and non-negative, got {value}",
            policy_id=_first_offender(portfolio, bad),
            parameter="frequency",
            value=value,
        )
    return rates


def severity_means(severity_model: PredictiveModel, portfolio: Portfolio) -> np.ndarray:
    """Vectorized :func:`severity_mean` over a whole portfolio.

    Raises:
        InvalidParameterError: Naming the first policy with a non-positive
            or non-finite mean.
    """
    if len(portfolio) == 0:
        return np.zeros(0)

    means = _predict_all(severity_model, portfolio, "severity")
    bad = ~np.isfinite(means) | (means <= 0)
    if bad.any():
        value = float(means[bad][0])
        raise InvalidParameterError(
            f"predicted severity mean must be positive, got {value}",
            policy_id=_first_offender(portfolio, bad),
            parameter="mean",
            value=value,
        )
    return means


@dataclass(frozen=True)
class PortfolioParameters:
    """Per-policy distribution parameters for one portfolio.

    Attributes:
        policy_ids: Identifiers in portfolio order.
        poisson_rates: Poisson mean claim count per policy.
        severity_means: Gamma mean claim size per policy.
        gamma_shape: Shared Gamma shape ``1 / dispersion``, or ``None`` when
            claim sizes are not sampled.
        gamma_rates: Per-policy Gamma rate, or ``None`` when claim sizes are
            not sampled.
    """

    policy_ids: np.ndarray
    poisson_rates: np.ndarray
    severity_means: np.ndarray
    gamma_shape: Optional[float] = None
    gamma_rates: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.poisson_rates)

    @property
    def expected_claim_count(self) -> float:
        return float(self.poisson_rates.sum())

    @property
    def expected_ordinary_claims(self) -> float:
        """Expected ordinary claim cost for the whole portfolio."""
        return float(np.dot(self.poisson_rates, self.severity_means))


def portfolio_parameters(
    frequency_model: PredictiveModel,
    severity_model: PredictiveModel,
    dispersion: float,
    portfolio: Portfolio,
    simulate_claim_size: bool = True,
) -> PortfolioParameters:
    """Compute every policy's distribution parameters in one pass.

    Args:
        frequency_model: Fitted frequency model.
        severity_model: Fitted severity model.
        dispersion: Severity model dispersion. Only checked when
            ``simulate_claim_size`` is true.
        portfolio: The policies.
        simulate_claim_size: Whether Gamma parameters are needed.

    Returns:
        The portfolio's parameters.

    Raises:
        InvalidParameterError: On the first invalid policy or dispersion.
    """
    rates = poisson_rates(frequency_model, portfolio)
    means = severity_means(severity_model, portfolio)

    shape = None
    gamma_rates = None
    if simulate_claim_size:
        shape, _ = gamma_shape_rate(1.0, dispersion)
        gamma_rates = shape / means

    logger.debug(
        "Computed parameters for %d policies (expected claims %.3f)",
        len(portfolio),
        rates.sum(),
    )
    return PortfolioParameters(
        policy_ids=portfolio.policy_ids,
        poisson_rates=rates,
        severity_means=means,
        gamma_shape=shape,
        gamma_rates=gamma_rates,
    )
