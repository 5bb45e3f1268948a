"""Predictive model capability consumed by the simulator.

The simulator never fits models. It only calls ``predict`` on objects that
were fitted elsewhere, so any regression technique can be plugged in as long
as it satisfies :class:`PredictiveModel` (frequency) or
:class:`SeverityModel` (severity, which also carries a ``dispersion``).

Three families of implementations are provided:

- :class:`LogLinearModel` and its subclasses :class:`FrequencyGLM` and
  :class:`SeverityGLM` rebuild a log-link GLM predictor from published
  coefficients (e.g. a rating table).
- :class:`ConstantModel` predicts the same value for every policy, which is
  useful for flat-rate books and tests; :class:`ColumnModel` reads
  predictions that were scored elsewhere from a column of the portfolio.
- :class:`FittedGLMFrequencyModel` and :class:`FittedGLMSeverityModel` wrap an
  already-fitted statsmodels ``GLMResults`` object.
"""

from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

import numpy as np
import pandas as pd


@runtime_checkable
class PredictiveModel(Protocol):
    """Anything that maps a frame of policies to one prediction per row."""

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        """Predict the mean response for each row of ``data``."""


@runtime_checkable
class SeverityModel(Protocol):
    """A predictive model for claim size with a model-wide dispersion."""

    dispersion: float

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        """Predict the expected claim amount for each row of ``data``."""


class LogLinearModel:
    """Log-link linear predictor built from fixed coefficients.

    The prediction for a row is::

        exp(intercept + sum(slope * x) + sum(level_effect) + log(offset))

    Categorical effects use treatment coding: list the base level with an
    effect of ``0.0``. Levels not listed raise ``ValueError`` rather than
    silently falling back to the base level.

    Args:
        intercept: Linear predictor intercept.
        coefficients: Slopes for continuous covariates, keyed by column.
        categorical: Level effects for categorical covariates, keyed by
            column then level.
        offset_column: Optional column whose log is added to the linear
            predictor (e.g. exposure for a frequency model).
    """

    def __init__(
        self,
        intercept: float,
        coefficients: Optional[Mapping[str, float]] = None,
        categorical: Optional[Mapping[str, Mapping[Any, float]]] = None,
        offset_column: Optional[str] = None,
    ):
        self.intercept = float(intercept)
        self.coefficients: Dict[str, float] = {
            k: float(v) for k, v in (coefficients or {}).items()
        }
        self.categorical: Dict[str, Dict[Any, float]] = {
            col: {level: float(effect) for level, effect in levels.items()}
            for col, levels in (categorical or {}).items()
        }
        self.offset_column = offset_column

    @property
    def required_columns(self) -> list:
        """Columns ``predict`` reads from its input frame."""
        columns = list(self.coefficients) + list(self.categorical)
        if self.offset_column is not None:
            columns.append(self.offset_column)
        return columns

    def linear_predictor(self, data: pd.DataFrame) -> np.ndarray:
        """Compute the linear predictor for each row.

        Args:
            data: Policy covariates.

        Returns:
            Array of linear predictor values (log scale).

        Raises:
            KeyError: If a required column is missing.
            ValueError: If a categorical column holds an unlisted level.
        """
        missing = [c for c in self.required_columns if c not in data.columns]
        if missing:
            raise KeyError(f"Missing covariate columns: {missing}")

        eta = np.full(len(data), self.intercept, dtype=float)
        for column, slope in self.coefficients.items():
            eta += slope * data[column].to_numpy(dtype=float)

        for column, levels in self.categorical.items():
            effects = data[column].astype(object).map(levels)
            unknown = data.loc[effects.isna(), column].unique()
            if len(unknown) > 0:
                raise ValueError(f"Unknown levels for {column!r}: {list(unknown)}")
            eta += effects.to_numpy(dtype=float)

        if self.offset_column is not None:
            # log(0) -> -inf -> exp() == 0 for policies not in force
            with np.errstate(divide="ignore"):
                eta += np.log(data[self.offset_column].to_numpy(dtype=float))
        return eta

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        """Predict the mean response on the original scale."""
        return np.exp(self.linear_predictor(data))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(intercept={self.intercept}, "
            f"coefficients={self.coefficients}, categorical={self.categorical}, "
            f"offset_column={self.offset_column!r})"
        )


class FrequencyGLM(LogLinearModel):
    """Poisson log-link frequency model with ``log(exposure)`` offset."""

    def __init__(
        self,
        intercept: float,
        coefficients: Optional[Mapping[str, float]] = None,
        categorical: Optional[Mapping[str, Mapping[Any, float]]] = None,
        exposure_column: str = "exposure",
    ):
        super().__init__(intercept, coefficients, categorical, offset_column=exposure_column)


class SeverityGLM(LogLinearModel):
    """Gamma log-link severity model.

    Args:
        intercept: Linear predictor intercept.
        dispersion: Gamma dispersion of the fitted model; the shape of each
            claim's Gamma distribution is ``1 / dispersion``.
        coefficients: Slopes for continuous covariates.
        categorical: Level effects for categorical covariates.
    """

    def __init__(
        self,
        intercept: float,
        dispersion: float,
        coefficients: Optional[Mapping[str, float]] = None,
        categorical: Optional[Mapping[str, Mapping[Any, float]]] = None,
    ):
        super().__init__(intercept, coefficients, categorical)
        self.dispersion = float(dispersion)


class ConstantModel:
    """Predicts the same value for every row.

    Args:
        value: The prediction.
        dispersion: Optional dispersion, so the model can serve as a
            severity model.
        exposure_column: If set, the prediction is multiplied by this
            column, turning an annual rate into a per-policy mean.
    """

    def __init__(
        self,
        value: float,
        dispersion: Optional[float] = None,
        exposure_column: Optional[str] = None,
    ):
        self.value = float(value)
        if dispersion is not None:
            self.dispersion = float(dispersion)
        self.exposure_column = exposure_column

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        prediction = np.full(len(data), self.value, dtype=float)
        if self.exposure_column is not None:
            prediction *= data[self.exposure_column].to_numpy(dtype=float)
        return prediction


class FittedGLMFrequencyModel:
    """Adapter for a fitted statsmodels Poisson GLM with an exposure offset.

    The wrapped results object must have been fitted with
    ``offset=log(exposure)`` (or equivalently ``exposure=``); the adapter
    supplies the same offset at prediction time.

    Args:
        results: Fitted ``GLMResults`` (formula or array API).
        exposure_column: Column holding each policy's exposure.
    """

    def __init__(self, results: Any, exposure_column: str = "exposure"):
        self.results = results
        self.exposure_column = exposure_column

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        exposure = data[self.exposure_column].to_numpy(dtype=float)
        with np.errstate(divide="ignore"):
            offset = np.log(exposure)
        return np.asarray(self.results.predict(data, offset=offset), dtype=float)


class FittedGLMSeverityModel:
    """Adapter for a fitted statsmodels Gamma GLM.

    Args:
        results: Fitted ``GLMResults``.
        dispersion: Override for the dispersion. Defaults to the fitted
            model's ``scale`` (the Pearson estimate for Gamma GLMs).
    """

    def __init__(self, results: Any, dispersion: Optional[float] = None):
        self.results = results
        self.dispersion = float(results.scale if dispersion is None else dispersion)

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        return np.asarray(self.results.predict(data), dtype=float)


class ColumnModel:
    """Reads predictions already scored by an external system from a column.

    Args:
        column: Column holding one prediction per policy.
        dispersion: Optional dispersion, so the model can serve as a
            severity model.
    """

    def __init__(self, column: str, dispersion: Optional[float] = None):
        self.column = column
        if dispersion is not None:
            self.dispersion = float(dispersion)

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        if self.column not in data.columns:
            raise KeyError(f"Missing prediction column: {self.column!r}")
        return data[self.column].to_numpy(dtype=float)
