"""Tests for policy records and the portfolio container."""

import math

import numpy as np
import pandas as pd
import pytest

from loss_simulator._warnings import DataQualityWarning
from loss_simulator.portfolio import Policy, Portfolio


class TestPolicy:
    """Test the Policy record."""

    def test_valid_policy(self):
        """Test construction and immutability."""
        policy = Policy("P1", 0.5, {"region": "R11"}, premium=120.0)
        assert policy.exposure == 0.5
        with pytest.raises(AttributeError):
            policy.exposure = 1.0

    def test_exposure_above_one_allowed(self):
        """Test that multi-period exposure is accepted."""
        assert Policy("P1", 1.8).exposure == 1.8

    @pytest.mark.parametrize("exposure", [-0.1, math.inf, math.nan])
    def test_invalid_exposure(self, exposure):
        """Test that negative or non-finite exposure is rejected."""
        with pytest.raises(ValueError, match="exposure"):
            Policy("P1", exposure)

    def test_to_frame(self):
        """Test conversion to a one-row model input."""
        frame = Policy("P1", 0.5, {"region": "R11", "power": 6}).to_frame()
        assert len(frame) == 1
        assert frame.loc[0, "exposure"] == 0.5
        assert frame.loc[0, "region"] == "R11"
        assert "policy_id" not in frame.columns


class TestPortfolio:
    """Test the Portfolio container."""

    def test_basic_properties(self, portfolio, motor_frame):
        """Test size, totals and identifiers."""
        assert len(portfolio) == 6
        assert portfolio.total_exposure == pytest.approx(motor_frame["exposure"].sum())
        assert portfolio.total_premium == pytest.approx(motor_frame["premium"].sum())
        np.testing.assert_array_equal(portfolio.policy_ids, motor_frame["policy_id"])

    def test_covariate_columns(self, portfolio):
        """Test that id and premium are not covariates."""
        covariates = portfolio.covariate_columns
        assert "policy_id" not in covariates
        assert "premium" not in covariates
        assert "region" in covariates
        assert "exposure" in covariates

    def test_frame_is_a_copy(self, portfolio):
        """Test that callers cannot mutate the portfolio through frame."""
        frame = portfolio.frame
        frame.loc[0, "exposure"] = 99.0
        assert portfolio.frame.loc[0, "exposure"] == 1.0

    def test_exposure_read_only(self, portfolio):
        """Test that the exposure array cannot be written."""
        with pytest.raises(ValueError):
            portfolio.exposure[0] = 5.0

    def test_source_frame_changes_do_not_leak(self, motor_frame):
        """Test that the portfolio snapshots its input."""
        portfolio = Portfolio(motor_frame)
        motor_frame.loc[0, "exposure"] = 42.0
        assert portfolio.exposure[0] == 1.0

    def test_iteration_yields_policies(self, portfolio):
        """Test iteration in portfolio order."""
        policies = list(portfolio)
        assert [p.policy_id for p in policies] == [101, 102, 103, 104, 105, 106]
        first = policies[0]
        assert first.exposure == 1.0
        assert first.premium == 420.0
        assert first.covariates["region"] == "R24"
        assert "exposure" not in first.covariates

    def test_missing_premium_defaults_to_zero(self):
        """Test that a portfolio without premium is allowed."""
        portfolio = Portfolio(pd.DataFrame({"policy_id": [1], "exposure": [1.0]}))
        assert portfolio.total_premium == 0.0

    def test_missing_required_columns(self):
        """Test that id and exposure columns are required."""
        with pytest.raises(ValueError, match="missing required columns"):
            Portfolio(pd.DataFrame({"policy_id": [1]}))

    def test_duplicate_ids(self):
        """Test that duplicate identifiers are rejected."""
        with pytest.raises(ValueError, match="Duplicate policy ids"):
            Portfolio(pd.DataFrame({"policy_id": [1, 1], "exposure": [1.0, 1.0]}))

    def test_negative_exposure_names_policy(self):
        """Test that bad exposures are reported with policy ids."""
        data = pd.DataFrame({"policy_id": ["A", "B"], "exposure": [1.0, -0.5]})
        with pytest.raises(ValueError, match="'B'"):
            Portfolio(data)

    def test_zero_exposure_warns(self):
        """Test that zero-exposure policies are flagged."""
        data = pd.DataFrame({"policy_id": ["A", "B"], "exposure": [1.0, 0.0]})
        with pytest.warns(DataQualityWarning, match="1 policies have zero exposure"):
            Portfolio(data)

    def test_custom_column_names(self):
        """Test non-default column roles."""
        data = pd.DataFrame({"IDpol": [7], "Exposure": [0.3], "Prime": [99.0]})
        portfolio = Portfolio(
            data, id_column="IDpol", exposure_column="Exposure", premium_column="Prime"
        )
        assert portfolio.total_premium == 99.0
        assert portfolio.policy(0).policy_id == 7

    def test_policy_frame_keeps_exposure_column(self):
        """Test that single-policy model input uses the portfolio's exposure name."""
        data = pd.DataFrame({"IDpol": [7, 8], "Exposure": [0.3, 1.0], "region": ["R11", "R24"]})
        portfolio = Portfolio(data, id_column="IDpol", exposure_column="Exposure")

        policy = portfolio.policy(0)
        assert policy.exposure_column == "Exposure"
        frame = policy.to_frame()
        assert list(frame.columns) == ["region", "Exposure"]
        assert frame.loc[0, "Exposure"] == 0.3

    def test_from_policies_keeps_exposure_column(self):
        """Test that policies with a custom exposure name rebuild the same portfolio."""
        policies = [
            Policy("A", 0.5, {"region": "R11"}, exposure_column="expo"),
            Policy("B", 1.0, {"region": "R24"}, exposure_column="expo"),
        ]
        portfolio = Portfolio.from_policies(policies)
        assert portfolio.exposure_column == "expo"
        assert "exposure" not in portfolio.frame.columns
        assert portfolio.total_exposure == 1.5

    def test_from_policies_mixed_exposure_columns(self):
        """Test that policies must agree on the exposure column."""
        with pytest.raises(ValueError, match="different exposure columns"):
            Portfolio.from_policies(
                [Policy("A", 1.0), Policy("B", 1.0, exposure_column="expo")]
            )

    def test_risk_premium_column(self):
        """Test that an optional risk premium is carried onto policies."""
        data = pd.DataFrame({"policy_id": [1], "exposure": [1.0], "risk_premium": [80.0]})
        portfolio = Portfolio(data)
        assert portfolio.policy(0).risk_premium == 80.0
        assert "risk_premium" not in portfolio.covariate_columns

    def test_from_policies(self):
        """Test building from Policy records."""
        portfolio = Portfolio.from_policies(
            [
                Policy("A", 1.0, {"region": "R11"}, premium=100.0),
                Policy("B", 0.5, {"region": "R24"}, premium=60.0, risk_premium=55.0),
            ]
        )
        assert len(portfolio) == 2
        assert portfolio.total_premium == 160.0
        assert portfolio.policy(1).covariates["region"] == "R24"

    def test_from_no_policies(self):
        """Test that an empty book is allowed."""
        portfolio = Portfolio.from_policies([])
        assert len(portfolio) == 0
        assert portfolio.total_exposure == 0.0
