"""Tests for outcome summaries and risk premium estimates."""

import numpy as np
import pandas as pd
import pytest

from loss_simulator.aggregation import SimulationResult
from loss_simulator.analysis import expected_risk_premium, summarize_outcomes
from loss_simulator.batch import SimulationBatch, replicate
from loss_simulator.config import LargeLossConfig
from loss_simulator.exceptions import InvalidParameterError
from loss_simulator.models import ColumnModel, ConstantModel
from loss_simulator.portfolio import Portfolio
from loss_simulator.simulator import create_simulator


@pytest.fixture
def ladder_batch():
    """Totals 1, 2, ..., 100 from ordinary claims only."""
    return SimulationBatch([SimulationResult(float(i), 0.0, 1, 0) for i in range(1, 101)])


class TestSummarizeOutcomes:
    """Test summary statistics against premium."""

    def test_basic_statistics(self, ladder_batch):
        """Test mean, spread and loss probability on known data."""
        summary = summarize_outcomes(ladder_batch, premium=60.0, confidence=0.9)

        assert summary.n_iterations == 100
        assert summary.mean_total_claims == pytest.approx(50.5)
        assert summary.std_total_claims == pytest.approx(np.std(np.arange(1, 101), ddof=1))
        assert summary.probability_of_loss == pytest.approx(0.4)
        assert summary.mean_loss_ratio == pytest.approx(50.5 / 60.0)
        assert summary.large_loss_share == 0.0
        assert summary.mean_ordinary_claims == pytest.approx(50.5)

    def test_tail_measures(self, ladder_batch):
        """Test empirical VaR and TVaR."""
        summary = summarize_outcomes(ladder_batch, premium=60.0, confidence=0.9)
        assert summary.var == pytest.approx(90.1)
        assert summary.tvar == pytest.approx(95.5)
        assert summary.tvar >= summary.var

    def test_confidence_interval(self, ladder_batch):
        """Test that the mean interval is centred and widens with coverage."""
        narrow = summarize_outcomes(ladder_batch, premium=60.0, interval=0.5)
        wide = summarize_outcomes(ladder_batch, premium=60.0, interval=0.99)

        low, high = narrow.mean_confidence_interval
        assert (low + high) / 2 == pytest.approx(50.5)
        assert wide.mean_confidence_interval[0] < low
        assert wide.mean_confidence_interval[1] > high

    def test_large_loss_share(self):
        """Test the share of claims coming from large losses."""
        batch = SimulationBatch(
            [SimulationResult(100.0, 0.0, 1, 0), SimulationResult(100.0, 200.0, 1, 1)]
        )
        summary = summarize_outcomes(batch, premium=150.0)
        assert summary.mean_large_claims == pytest.approx(100.0)
        assert summary.large_loss_share == pytest.approx(100.0 / 200.0)

    def test_dataframe_input(self, ladder_batch):
        """Test that a results frame summarizes like the batch."""
        from_batch = summarize_outcomes(ladder_batch, premium=60.0)
        from_frame = summarize_outcomes(ladder_batch.to_dataframe(), premium=60.0)
        assert from_batch == from_frame

    def test_single_iteration(self):
        """Test that one iteration has zero spread."""
        summary = summarize_outcomes(SimulationBatch([SimulationResult(5.0, 0.0)]), premium=10.0)
        assert summary.std_total_claims == 0.0
        assert summary.mean_confidence_interval == (5.0, 5.0)

    def test_to_dict(self, ladder_batch):
        """Test conversion to a plain record."""
        record = summarize_outcomes(ladder_batch, premium=60.0).to_dict()
        assert record["n_iterations"] == 100
        assert "probability_of_loss" in record

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"premium": 0.0}, "Premium must be positive"),
            ({"premium": 10.0, "confidence": 1.0}, "confidence"),
            ({"premium": 10.0, "interval": 0.0}, "interval"),
        ],
    )
    def test_invalid_arguments(self, ladder_batch, kwargs, message):
        """Test argument validation."""
        with pytest.raises(ValueError, match=message):
            summarize_outcomes(ladder_batch, **kwargs)

    def test_empty_batch(self):
        """Test that an empty batch cannot be summarized."""
        with pytest.raises(ValueError, match="empty"):
            summarize_outcomes(SimulationBatch(), premium=10.0)


class TestExpectedRiskPremium:
    """Test the modelled expected cost per policy."""

    @pytest.fixture
    def book(self):
        return Portfolio(
            pd.DataFrame({"policy_id": ["A", "B", "C"], "exposure": [1.0, 0.5, 0.5]})
        )

    def test_ordinary_only(self, book):
        """Test lambda * mu per policy."""
        premium = expected_risk_premium(
            ConstantModel(0.2, exposure_column="exposure"), ConstantModel(1_000.0), book
        )
        assert premium.index.name == "policy_id"
        assert list(premium.index) == ["A", "B", "C"]
        np.testing.assert_allclose(premium.to_numpy(), [200.0, 100.0, 100.0])

    def test_large_loss_load_by_exposure(self, book):
        """Test that the large-loss cost is spread in proportion to exposure."""
        large_loss = LargeLossConfig(threshold=1_000.0, rate=0.5, shape_factor=2.0)
        base = expected_risk_premium(
            ConstantModel(0.2, exposure_column="exposure"), ConstantModel(1_000.0), book
        )
        loaded = expected_risk_premium(
            ConstantModel(0.2, exposure_column="exposure"),
            ConstantModel(1_000.0),
            book,
            large_loss_config=large_loss,
        )
        load = loaded - base
        assert load.sum() == pytest.approx(large_loss.expected_annual_loss())
        assert load["A"] == pytest.approx(2 * load["B"])

    def test_invalid_policy(self, book):
        """Test that invalid model output names the policy."""
        frame = book.frame.assign(mu=[1.0, 1.0, -3.0])
        with pytest.raises(InvalidParameterError, match="'C'"):
            expected_risk_premium(ConstantModel(0.1), ColumnModel("mu"), Portfolio(frame))

    def test_matches_simulated_mean(self, frequency_model, severity_model, portfolio, large_loss):
        """Test that the simulated mean approaches the total risk premium."""
        simulator = create_simulator(frequency_model, severity_model, large_loss)
        batch = replicate(simulator(portfolio, seed=123), 20_000)
        expected = expected_risk_premium(
            frequency_model, severity_model, portfolio, large_loss_config=large_loss
        ).sum()
        summary = summarize_outcomes(batch, premium=portfolio.total_premium)
        assert summary.mean_total_claims == pytest.approx(expected, rel=0.1)
