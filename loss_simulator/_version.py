"""Version information for loss_simulator."""

__version__ = "0.3.0"
