"""Configuration models for the loss simulator using Pydantic v2.

Two models live here:

- :class:`LargeLossConfig` holds the three book-level scalars of the
  large-loss process (Pareto threshold, Poisson event rate, tail index).
- :class:`SimulationSettings` bundles a large-loss configuration with the
  batch parameters (iterations, seed, workers) so a whole run can be
  described in a YAML file.

Examples:
    Direct construction::

        large_loss = LargeLossConfig(threshold=50_000, rate=0.5, shape_factor=2.72)

    From the shipped defaults::

        settings = load_settings("baseline")
        settings.large_loss.expected_annual_loss()
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import warnings

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
import yaml

from ._warnings import ConfigurationWarning
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent / "data" / "parameters"


class LargeLossConfig(BaseModel):
    """Book-level large-loss process parameters.

    Large losses arrive as a Poisson process whose rate applies to the whole
    book per simulated year, independent of policy covariates and of total
    exposure. Each loss is Pareto distributed with minimum ``threshold`` and
    tail index ``shape_factor``.

    Attributes:
        threshold: Minimum size of a large loss.
        rate: Expected number of large losses per simulated year. Zero
            disables the large-loss component.
        shape_factor: Pareto tail index. Lower means heavier tail; at or
            below 1 the mean is infinite.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False, extra="forbid")

    threshold: float = Field(gt=0, description="Minimum size of a large loss")
    rate: float = Field(ge=0, description="Annual book-level Poisson rate of large losses")
    shape_factor: float = Field(gt=0, description="Pareto tail index of large-loss severity")

    @model_validator(mode="after")
    def warn_infinite_mean(self):
        """Warn when the severity distribution has no finite mean.

        Returns:
            The validated config, unchanged.
        """
        if self.shape_factor <= 1:
            warnings.warn(
                f"shape_factor={self.shape_factor} gives large losses an infinite mean; "
                "simulated totals will not converge",
                ConfigurationWarning,
                stacklevel=2,
            )
        return self

    def expected_severity(self) -> float:
        """Mean size of a single large loss.

        Returns:
            ``shape_factor * threshold / (shape_factor - 1)``, or ``inf`` when
            ``shape_factor <= 1``.
        """
        if self.shape_factor <= 1:
            return float("inf")
        return self.shape_factor * self.threshold / (self.shape_factor - 1)

    def expected_annual_loss(self) -> float:
        """Expected large-loss cost per simulated year for the whole book."""
        if self.rate == 0:
            return 0.0
        return self.rate * self.expected_severity()

    @classmethod
    def coerce(cls, value: Any) -> "LargeLossConfig":
        """Build a config from a config, mapping, or attribute-bearing object.

        Args:
            value: A :class:`LargeLossConfig`, a mapping with ``threshold``,
                ``rate`` and ``shape_factor`` keys, or any object exposing
                those attributes.

        Returns:
            A validated :class:`LargeLossConfig`.

        Raises:
            ConfigurationError: If the value is missing or any scalar violates
                its constraint. Every offending field is listed.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            raise ConfigurationError(["large_loss_config is required"])
        try:
            if isinstance(value, Mapping):
                return cls.model_validate(dict(value))
            return cls.model_validate(value, from_attributes=True)
        except ValidationError as e:
            raise ConfigurationError(validation_issues(e, prefix="large_loss")) from e


class SimulationSettings(BaseModel):
    """Parameters for a full simulation batch.

    Attributes:
        large_loss: Large-loss process parameters.
        simulate_claim_size: Draw Gamma claim sizes (``True``) or use the
            severity model's mean for every claim (``False``).
        n_iterations: Number of portfolio iterations in the batch.
        seed: Root seed. ``None`` draws fresh OS entropy.
        n_workers: Worker processes for :func:`loss_simulator.batch.run_parallel`.
        n_chunks: Number of independently seeded chunks the batch is split
            into. Defaults to ``n_workers``.
    """

    model_config = ConfigDict(extra="forbid")

    large_loss: LargeLossConfig
    simulate_claim_size: bool = Field(default=True, description="Sample claim sizes")
    n_iterations: int = Field(default=1_000, gt=0, description="Portfolio iterations")
    seed: Optional[int] = Field(default=None, ge=0, description="Root random seed")
    n_workers: int = Field(default=1, ge=1, description="Worker processes")
    n_chunks: Optional[int] = Field(default=None, ge=1, description="Seeded chunks")

    @model_validator(mode="after")
    def validate_chunks(self):
        """Ensure chunking is consistent with the iteration count.

        Returns:
            Validated settings.

        Raises:
            ValueError: If there are more chunks than iterations. Without an
                explicit ``n_chunks`` the chunk count is ``n_workers``.
        """
        chunks = self.n_chunks if self.n_chunks is not None else self.n_workers
        if chunks > self.n_iterations:
            name = "n_chunks" if self.n_chunks is not None else "n_chunks (from n_workers)"
            raise ValueError(
                f"{name} ({chunks}) cannot exceed n_iterations ({self.n_iterations})"
            )
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "SimulationSettings":
        """Load settings from a YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Validated settings.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValidationError: If the settings are invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Remove private anchors if present
        data = {k: v for k, v in data.items() if not k.startswith("_")}

        logger.debug("Loaded simulation settings from %s", path)
        return cls(**data)

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base: Optional["SimulationSettings"] = None
    ) -> "SimulationSettings":
        """Create settings from a dictionary, optionally overriding a base.

        Args:
            data: Settings values. Nested ``large_loss`` dicts are merged
                key by key into the base.
            base: Optional settings to override.

        Returns:
            Validated settings.
        """
        if base is None:
            return cls(**data)
        return cls(**deep_merge(base.model_dump(), data))


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def validation_issues(error: ValidationError, prefix: str = "") -> List[str]:
    """Flatten a pydantic ``ValidationError`` into readable issue strings.

    Args:
        error: The validation error.
        prefix: Optional dotted prefix for field locations.

    Returns:
        One ``"<field>: <message> (got <input>)"`` string per error.
    """
    issues = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"])
        name = f"{prefix}.{loc}" if prefix and loc else (prefix or loc)
        issues.append(f"{name}: {err['msg']} (got {err.get('input')!r})")
    return issues


def load_settings(
    config_name: str = "baseline",
    config_dir: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SimulationSettings:
    """Load named settings from a config directory.

    Args:
        config_name: File name without the ``.yaml`` extension, or a file
            name relative to ``config_dir``.
        config_dir: Directory containing configuration files. Defaults to
            the parameters shipped with the package.
        overrides: Optional values merged over the loaded settings.

    Returns:
        Validated settings.

    Raises:
        FileNotFoundError: If no matching file exists.
    """
    directory = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR
    config_file = directory / f"{config_name}.yaml"
    if not config_file.exists():
        config_file = directory / config_name
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration '{config_name}' not found in {directory}")

    settings = SimulationSettings.from_yaml(config_file)
    if overrides:
        settings = SimulationSettings.from_dict(overrides, base=settings)
    return settings
