"""
Errors raised by the estimation and simulation routines.

All errors derive from ArimaError, and each also derives from the builtin
exception a caller would naturally catch (ValueError for bad input,
RuntimeError for an optimizer that gave up, ArithmeticError for overflow).
"""


class ArimaError(Exception):
    """Base class of all errors raised by tsa_arima."""


class InsufficientDataError(ArimaError, ValueError):
    """The series is too short for the requested lag, order or differencing."""


class InvalidParametersError(ArimaError, ValueError):
    """Negative or mismatched orders, bad coefficient lengths or a non-positive length."""


class NonConvergenceError(ArimaError, RuntimeError):
    """
    The optimizer exhausted its iteration budget without meeting the tolerances.

    Attributes:
    - x: Last parameter vector visited by the optimizer.
    - nit: Number of iterations performed.
    """
    def __init__(self, message, x=None, nit=None):
        super().__init__(message)
        self.x = x
        self.nit = nit


class NumericalInstabilityError(ArimaError, ArithmeticError):
    """A residual, variance or objective value became non-finite."""
