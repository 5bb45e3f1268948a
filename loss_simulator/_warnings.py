"""Custom warning classes for the loss simulator.

Example:
    Silence the infinite-mean warning for a deliberately heavy tail::

        import warnings
        from loss_simulator._warnings import ConfigurationWarning

        warnings.filterwarnings("ignore", category=ConfigurationWarning)
"""


class LossSimulatorWarning(UserWarning):
    """Base class for all loss simulator warnings."""


class ConfigurationWarning(LossSimulatorWarning):
    """Unusual but legal configuration, e.g. a Pareto tail with no finite mean."""


class DataQualityWarning(LossSimulatorWarning):
    """Portfolio data that is legal but probably unintended, e.g. zero exposure."""
