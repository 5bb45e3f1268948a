"""Compare simulated claim distributions against collected premium.

The simulator produces a stream of :class:`SimulationResult` records; this
module turns a batch of them into the figures a pricing review looks at:
how the expected claims compare to premium, how wide the distribution is,
and how often the book would lose money.
"""

from dataclasses import asdict, dataclass
import logging
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from .batch import SimulationBatch
from .config import LargeLossConfig
from .models import PredictiveModel
from .parameters import poisson_rates, severity_means
from .portfolio import Portfolio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutcomeSummary:
    """Summary of simulated total claims against premium.

    Attributes:
        n_iterations: Number of simulated iterations.
        premium: Premium the claims are compared against.
        mean_total_claims: Mean of ``total_claims``.
        std_total_claims: Sample standard deviation of ``total_claims``.
        mean_confidence_interval: t-based interval for the mean.
        var: Empirical Value at Risk of ``total_claims``.
        tvar: Mean of ``total_claims`` at or above ``var``.
        confidence: Confidence level of ``var`` and ``tvar``.
        probability_of_loss: Share of iterations where claims exceed premium.
        mean_loss_ratio: ``mean_total_claims / premium``.
        large_loss_share: Share of mean total claims from large losses.
        mean_ordinary_claims: Mean of ``ordinary_claims_total``.
        mean_large_claims: Mean of ``large_claims_total``.
    """

    n_iterations: int
    premium: float
    mean_total_claims: float
    std_total_claims: float
    mean_confidence_interval: Tuple[float, float]
    var: float
    tvar: float
    confidence: float
    probability_of_loss: float
    mean_loss_ratio: float
    large_loss_share: float
    mean_ordinary_claims: float
    mean_large_claims: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _empirical_var(losses: np.ndarray, confidence: float) -> float:
    return float(np.percentile(losses, confidence * 100))


def _empirical_tvar(losses: np.ndarray, var_value: float) -> float:
    tail_losses = losses[losses >= var_value]
    if len(tail_losses) == 0:
        return var_value
    return float(np.mean(tail_losses))


def summarize_outcomes(
    batch: Union[SimulationBatch, pd.DataFrame],
    premium: float,
    confidence: float = 0.99,
    interval: float = 0.95,
) -> OutcomeSummary:
    """Summarize a batch of simulated years against premium.

    Args:
        batch: Simulation results, as a batch or its ``to_dataframe()``.
        premium: Premium collected for the simulated period (usually
            ``portfolio.total_premium``).
        confidence: Confidence level for VaR and TVaR.
        interval: Coverage of the confidence interval for the mean.

    Returns:
        The summary.

    Raises:
        ValueError: If the batch is empty, the premium is not positive, or a
            level lies outside (0, 1).
    """
    frame = batch.to_dataframe() if isinstance(batch, SimulationBatch) else batch
    if len(frame) == 0:
        raise ValueError("Cannot summarize an empty batch")
    if premium <= 0:
        raise ValueError(f"Premium must be positive, got {premium}")
    for name, level in (("confidence", confidence), ("interval", interval)):
        if not 0 < level < 1:
            raise ValueError(f"{name} must be in (0, 1), got {level}")

    totals = frame["total_claims"].to_numpy(dtype=float)
    n = len(totals)
    mean = float(np.mean(totals))
    std = float(np.std(totals, ddof=1)) if n > 1 else 0.0

    if n > 1 and std > 0:
        low, high = stats.t.interval(interval, df=n - 1, loc=mean, scale=std / np.sqrt(n))
        mean_ci = (float(low), float(high))
    else:
        mean_ci = (mean, mean)

    var_value = _empirical_var(totals, confidence)
    mean_large = float(frame["large_claims_total"].mean())

    summary = OutcomeSummary(
        n_iterations=n,
        premium=float(premium),
        mean_total_claims=mean,
        std_total_claims=std,
        mean_confidence_interval=mean_ci,
        var=var_value,
        tvar=_empirical_tvar(totals, var_value),
        confidence=confidence,
        probability_of_loss=float(np.mean(totals > premium)),
        mean_loss_ratio=mean / premium,
        large_loss_share=mean_large / mean if mean > 0 else 0.0,
        mean_ordinary_claims=float(frame["ordinary_claims_total"].mean()),
        mean_large_claims=mean_large,
    )
    logger.info(
        "Summary over %d iterations: mean loss ratio %.2f%%, P(claims > premium) %.2f%%",
        n,
        summary.mean_loss_ratio * 100,
        summary.probability_of_loss * 100,
    )
    return summary


def expected_risk_premium(
    frequency_model: PredictiveModel,
    severity_model: PredictiveModel,
    portfolio: Portfolio,
    large_loss_config: Optional[LargeLossConfig] = None,
) -> pd.Series:
    """Modelled expected cost of each policy.

    The ordinary part is ``lambda * mu`` per policy. When a large-loss
    process is given, its expected annual cost is spread across policies in
    proportion to exposure.

    Args:
        frequency_model: Fitted frequency model.
        severity_model: Fitted severity model.
        portfolio: The policies.
        large_loss_config: Optional large-loss process to load onto the
            ordinary risk premium.

    Returns:
        Series of risk premiums indexed by policy id.

    Raises:
        InvalidParameterError: If any policy's model output is invalid.
    """
    risk_premium = poisson_rates(frequency_model, portfolio) * severity_means(
        severity_model, portfolio
    )

    if large_loss_config is not None and portfolio.total_exposure > 0:
        load = large_loss_config.expected_annual_loss()
        risk_premium = risk_premium + load * portfolio.exposure / portfolio.total_exposure

    return pd.Series(risk_premium, index=pd.Index(portfolio.policy_ids, name="policy_id"))
