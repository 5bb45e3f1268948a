"""Pytest configuration and shared fixtures."""

import numpy as np
import pandas as pd
import pytest

from loss_simulator.config import LargeLossConfig
from loss_simulator.models import FrequencyGLM, SeverityGLM
from loss_simulator.portfolio import Portfolio


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: long-running Monte Carlo convergence tests")


@pytest.fixture
def motor_frame():
    """Small motor book with the usual rating factors."""
    return pd.DataFrame(
        {
            "policy_id": [101, 102, 103, 104, 105, 106],
            "exposure": [1.0, 0.5, 0.25, 1.0, 0.8, 1.2],
            "driver_age": ["18-25", "26-45", "46-65", "26-45", "66+", "18-25"],
            "car_age": [2, 7, 12, 0, 4, 9],
            "region": ["R24", "R11", "R52", "R24", "R11", "R52"],
            "fuel": ["Diesel", "Regular", "Regular", "Diesel", "Regular", "Diesel"],
            "density": [1200, 85, 3500, 40, 640, 2100],
            "premium": [420.0, 180.0, 95.0, 260.0, 230.0, 510.0],
        }
    )


@pytest.fixture
def portfolio(motor_frame):
    return Portfolio(motor_frame)


@pytest.fixture
def frequency_model():
    """Poisson GLM with exposure offset, about 0.1 claims per policy-year."""
    return FrequencyGLM(
        intercept=np.log(0.08),
        coefficients={"car_age": 0.01},
        categorical={
            "driver_age": {"18-25": 0.6, "26-45": 0.0, "46-65": -0.1, "66+": 0.1},
            "region": {"R24": 0.0, "R11": 0.2, "R52": 0.1},
        },
    )


@pytest.fixture
def severity_model():
    """Gamma GLM averaging around 1,500 per claim."""
    return SeverityGLM(
        intercept=np.log(1_500),
        dispersion=1.1,
        categorical={"fuel": {"Regular": 0.0, "Diesel": 0.05}},
    )


@pytest.fixture
def large_loss():
    return LargeLossConfig(threshold=50_000, rate=0.5, shape_factor=2.72)


@pytest.fixture
def no_large_loss():
    return LargeLossConfig(threshold=50_000, rate=0.0, shape_factor=2.72)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)
