"""Exceptions raised by the loss simulator.

Construction-time problems surface as :class:`ConfigurationError`, which
collects every offending parameter before raising. Problems with a single
policy's model output surface as :class:`InvalidParameterError` and abort the
iteration in progress, since skipping the policy would bias the totals.
"""

from typing import Any, List, Optional


class LossSimulatorError(Exception):
    """Base class for all loss simulator errors."""


class ConfigurationError(LossSimulatorError):
    """Raised when a simulator cannot be built from the supplied configuration.

    Attributes:
        issues: List of specific configuration problems found.

    Examples:
        Catching and inspecting issues::

            try:
                create_simulator(freq_model, sev_model, {"threshold": -1})
            except ConfigurationError as e:
                for issue in e.issues:
                    print(f"  - {issue}")
    """

    def __init__(self, issues: List[str]) -> None:
        self.issues = issues
        bullet_list = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(
            f"Configuration has {len(issues)} critical "
            f"{'issue' if len(issues) == 1 else 'issues'}:\n{bullet_list}"
        )


class InvalidParameterError(LossSimulatorError, ValueError):
    """Raised when a distribution parameter derived from model output is invalid.

    Attributes:
        policy_id: Identifier of the offending policy, when known.
        parameter: Name of the offending parameter (e.g. ``"mean"``).
        value: The offending value.
    """

    def __init__(
        self,
        message: str,
        policy_id: Optional[Any] = None,
        parameter: Optional[str] = None,
        value: Optional[float] = None,
    ) -> None:
        self.policy_id = policy_id
        self.parameter = parameter
        self.value = value
        if policy_id is not None:
            message = f"Policy {policy_id!r}: {message}"
        super().__init__(message)
