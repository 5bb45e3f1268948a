"""Policy records and the read-only portfolio the simulator runs over.

A :class:`Portfolio` wraps a pandas ``DataFrame`` with one row per policy.
Three columns have fixed roles (identifier, exposure, collected premium) and
an optional fourth holds a modelled risk premium; every other column is a
covariate passed through to the predictive models untouched.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional
import warnings

import numpy as np
import pandas as pd

from ._warnings import DataQualityWarning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Policy:
    """One insured unit.

    Attributes:
        policy_id: Unique identifier.
        exposure: Fraction of the year in force. May exceed 1.0 for
            multi-period records; 0 means the policy cannot claim.
        covariates: Rating factors such as driver-age band, region or
            vehicle power.
        premium: Premium actually collected (the price quote).
        risk_premium: Modelled expected cost, if already computed.
        exposure_column: Column name the exposure is given under when the
            policy is turned into model input.
    """

    policy_id: Any
    exposure: float
    covariates: Dict[str, Any] = field(default_factory=dict)
    premium: float = 0.0
    risk_premium: Optional[float] = None
    exposure_column: str = "exposure"

    def __post_init__(self):
        if not np.isfinite(self.exposure) or self.exposure < 0:
            raise ValueError(
                f"Policy {self.policy_id!r}: exposure must be finite and non-negative, "
                f"got {self.exposure}"
            )

    def to_frame(self, exposure_column: Optional[str] = None) -> pd.DataFrame:
        """Single-row frame suitable for a model's ``predict``.

        The exposure goes under ``exposure_column``, or the policy's own
        ``exposure_column`` when omitted, so the frame matches the portfolio
        it came from.
        """
        row = dict(self.covariates)
        row[exposure_column or self.exposure_column] = self.exposure
        return pd.DataFrame([row])


class Portfolio:
    """Ordered, read-only book of policies.

    Args:
        data: One row per policy.
        id_column: Column holding unique policy identifiers.
        exposure_column: Column holding exposure in policy-years.
        premium_column: Column holding collected premium. If absent from
            ``data`` the premium is taken as zero.
        risk_premium_column: Optional column holding modelled risk premium.

    Raises:
        ValueError: If required columns are missing, identifiers repeat, or
            any exposure is negative or non-finite.
    """

    def __init__(
        self,
        data: pd.DataFrame,
        id_column: str = "policy_id",
        exposure_column: str = "exposure",
        premium_column: str = "premium",
        risk_premium_column: Optional[str] = "risk_premium",
    ):
        missing = [c for c in (id_column, exposure_column) if c not in data.columns]
        if missing:
            raise ValueError(f"Portfolio data is missing required columns: {missing}")

        frame = data.reset_index(drop=True).copy()
        if premium_column not in frame.columns:
            frame[premium_column] = 0.0

        duplicated = frame[id_column][frame[id_column].duplicated()].unique()
        if len(duplicated) > 0:
            raise ValueError(f"Duplicate policy ids: {list(duplicated[:10])}")

        exposure = frame[exposure_column].to_numpy(dtype=float, copy=True)
        bad = ~np.isfinite(exposure) | (exposure < 0)
        if bad.any():
            bad_ids = list(frame.loc[bad, id_column].iloc[:10])
            raise ValueError(
                f"Exposure must be finite and non-negative; offending policies: {bad_ids}"
            )

        n_zero = int((exposure == 0).sum())
        if n_zero:
            warnings.warn(
                f"{n_zero} policies have zero exposure and will never claim",
                DataQualityWarning,
                stacklevel=2,
            )

        self._frame = frame
        self._exposure = exposure
        self._exposure.setflags(write=False)
        self.id_column = id_column
        self.exposure_column = exposure_column
        self.premium_column = premium_column
        self.risk_premium_column = (
            risk_premium_column if risk_premium_column in frame.columns else None
        )
        logger.debug("Portfolio built with %d policies", len(frame))

    @classmethod
    def from_policies(cls, policies: Iterable[Policy]) -> "Portfolio":
        """Build a portfolio from :class:`Policy` records.

        Args:
            policies: Policies in portfolio order.

        Returns:
            Portfolio with default column names, except exposure, which keeps
            the policies' ``exposure_column``.

        Raises:
            ValueError: If the policies disagree on ``exposure_column``.
        """
        rows = []
        exposure_columns = set()
        for policy in policies:
            exposure_columns.add(policy.exposure_column)
            row = dict(policy.covariates)
            row.update(policy_id=policy.policy_id, premium=policy.premium)
            row[policy.exposure_column] = policy.exposure
            if policy.risk_premium is not None:
                row["risk_premium"] = policy.risk_premium
            rows.append(row)
        if len(exposure_columns) > 1:
            raise ValueError(f"Policies use different exposure columns: {sorted(exposure_columns)}")
        if not rows:
            return cls(pd.DataFrame(columns=["policy_id", "exposure", "premium"]))
        return cls(pd.DataFrame(rows), exposure_column=exposure_columns.pop())

    @property
    def frame(self) -> pd.DataFrame:
        """Copy of the underlying data, safe to hand to external models."""
        return self._frame.copy()

    @property
    def covariate_columns(self) -> List[str]:
        """Columns that are neither identifier, premium nor risk premium."""
        reserved = {self.id_column, self.premium_column, self.risk_premium_column}
        return [c for c in self._frame.columns if c not in reserved]

    @property
    def policy_ids(self) -> np.ndarray:
        return self._frame[self.id_column].to_numpy()

    @property
    def exposure(self) -> np.ndarray:
        """Read-only exposure array in portfolio order."""
        return self._exposure

    @property
    def premium(self) -> np.ndarray:
        return self._frame[self.premium_column].to_numpy(dtype=float)

    @property
    def total_exposure(self) -> float:
        return float(self._exposure.sum())

    @property
    def total_premium(self) -> float:
        return float(self.premium.sum())

    def policy(self, index: int) -> Policy:
        """Return the policy at position ``index``."""
        row = self._frame.iloc[index]
        risk_premium = None
        if self.risk_premium_column is not None:
            risk_premium = float(row[self.risk_premium_column])
        return Policy(
            policy_id=row[self.id_column],
            exposure=float(row[self.exposure_column]),
            covariates={
                c: row[c] for c in self.covariate_columns if c != self.exposure_column
            },
            premium=float(row[self.premium_column]),
            risk_premium=risk_premium,
            exposure_column=self.exposure_column,
        )

    def __len__(self) -> int:
        return len(self._frame)

    def __iter__(self) -> Iterator[Policy]:
        for i in range(len(self)):
            yield self.policy(i)

    def __repr__(self) -> str:
        return (
            f"Portfolio(n_policies={len(self)}, total_exposure={self.total_exposure:.2f}, "
            f"total_premium={self.total_premium:.2f})"
        )
