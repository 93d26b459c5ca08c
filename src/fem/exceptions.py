"""Error and warning types raised by the velocity-space engine."""


class FokkerPlanckError(Exception):
    """Base class for all fatal errors raised by the engine."""


class ConfigurationError(FokkerPlanckError, ValueError):
    """Invalid grid or operator configuration."""


class SingularOperatorError(FokkerPlanckError, ArithmeticError):
    """A sparse operator could not be factorized.

    Parameters
    ----------
    operator_name : str
        Name under which the operator was registered.
    reason : str
        Short description of the failure.
    """

    def __init__(self, operator_name: str, reason: str):
        self.operator_name = operator_name
        self.reason = reason
        super().__init__(f"Operator '{operator_name}' could not be factorized: {reason}")


class ShapeMismatchError(FokkerPlanckError, ValueError):
    """An input array does not match the grid it is used with."""

    def __init__(self, name: str, expected, actual):
        self.name = name
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(
            f"'{name}' has shape {self.actual}, expected {self.expected}"
        )


class ConvergenceWarning(UserWarning):
    """Non-fatal: residual moments after a conservation correction are large."""


def check_shape(array, expected, name: str):
    """Raise ShapeMismatchError unless ``array.shape == expected``."""
    shape = getattr(array, "shape", None)
    if shape is None or tuple(shape) != tuple(expected):
        raise ShapeMismatchError(name, expected, () if shape is None else shape)
    return array
