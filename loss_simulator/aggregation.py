"""One Monte Carlo iteration over a whole portfolio."""

from dataclasses import asdict, dataclass, field
import logging
from typing import TYPE_CHECKING, Dict, Optional

import numpy as np

from .parameters import PortfolioParameters, portfolio_parameters
from .portfolio import Portfolio
from .sampling import sample_large_losses, sample_portfolio_claims

if TYPE_CHECKING:
    from .simulator import SimulatorConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    """Aggregate claims for one simulated year of the portfolio.

    ``total_claims`` is always computed as the sum of the two components and
    cannot be passed in.
    """

    ordinary_claims_total: float
    large_claims_total: float
    ordinary_claim_count: int = 0
    large_claim_count: int = 0
    total_claims: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self, "total_claims", self.ordinary_claims_total + self.large_claims_total
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def run_iteration(
    portfolio: Portfolio,
    config: "SimulatorConfig",
    rng: np.random.Generator,
    parameters: Optional[PortfolioParameters] = None,
) -> SimulationResult:
    """Simulate one year of claims for every policy plus the book's large losses.

    Ordinary claims are drawn for all policies at once with
    :func:`~loss_simulator.sampling.sample_portfolio_claims`. The ordinary
    total has the same distribution as summing
    :func:`~loss_simulator.sampling.sample_policy_claims` over the portfolio
    with the same models, dispersion and ``simulate_claim_size``. The random
    stream differs, so a given seed does not reproduce the per-policy draws.

    Args:
        portfolio: The policies.
        config: Models, dispersion, large-loss process and claim-size toggle.
        rng: Random generator; the only state this function mutates.
        parameters: Distribution parameters previously computed for this
            portfolio and config. Computed from the models when omitted.

    Returns:
        The iteration's aggregate claims.

    Raises:
        InvalidParameterError: If any policy's model output is invalid. The
            iteration is abandoned; no policy is skipped.
    """
    if parameters is None:
        parameters = portfolio_parameters(
            config.frequency_model,
            config.severity_model,
            config.dispersion,
            portfolio,
            simulate_claim_size=config.simulate_claim_size,
        )

    counts, amounts = sample_portfolio_claims(parameters, config.simulate_claim_size, rng)
    large = sample_large_losses(config.large_loss, rng)

    result = SimulationResult(
        ordinary_claims_total=float(amounts.sum()),
        large_claims_total=large.amount,
        ordinary_claim_count=int(counts.sum()),
        large_claim_count=large.count,
    )
    logger.debug(
        "Iteration: %d ordinary claims (%.2f), %d large (%.2f)",
        result.ordinary_claim_count,
        result.ordinary_claims_total,
        result.large_claim_count,
        result.large_claims_total,
    )
    return result
