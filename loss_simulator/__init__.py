"""Monte Carlo loss simulation for insurance pricing risk."""

from ._version import __version__

# Use lazy imports so importing the package stays cheap (scipy, pandas)

__all__ = [
    "__version__",
    "ConfigurationError",
    "FrequencyGLM",
    "InvalidParameterError",
    "LargeLossConfig",
    "Policy",
    "Portfolio",
    "RunFunction",
    "SeverityGLM",
    "SimulationBatch",
    "SimulationResult",
    "SimulationSettings",
    "Simulator",
    "create_simulator",
    "replicate",
    "run_parallel",
    "summarize_outcomes",
]


def __getattr__(name):
    """Lazy import public names on first access."""
    if name in ("ConfigurationError", "InvalidParameterError"):
        from .exceptions import ConfigurationError, InvalidParameterError

        return locals()[name]
    elif name in ("FrequencyGLM", "SeverityGLM"):
        from .models import FrequencyGLM, SeverityGLM

        return locals()[name]
    elif name in ("LargeLossConfig", "SimulationSettings"):
        from .config import LargeLossConfig, SimulationSettings

        return locals()[name]
    elif name in ("Policy", "Portfolio"):
        from .portfolio import Policy, Portfolio

        return locals()[name]
    elif name == "SimulationResult":
        from .aggregation import SimulationResult

        return SimulationResult
    elif name in ("RunFunction", "Simulator", "create_simulator"):
        from .simulator import RunFunction, Simulator, create_simulator

        return locals()[name]
    elif name in ("SimulationBatch", "replicate", "run_parallel"):
        from .batch import SimulationBatch, replicate, run_parallel

        return locals()[name]
    elif name == "summarize_outcomes":
        from .analysis import summarize_outcomes

        return summarize_outcomes
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
