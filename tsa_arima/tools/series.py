import numpy as np
from tsa_arima.exceptions import InvalidParametersError


def as_series(y, name='series'):
    """
    Returns y as a new 1-d float64 array, leaving the caller's buffer untouched.
    Raises InvalidParametersError if y is not one-dimensional.
    """
    y = np.array(y, dtype='float64')
    if y.ndim != 1:
        raise InvalidParametersError(f'{name} must be a one-dimensional sequence, got shape {y.shape}.')
    return y


def as_coefficients(c, name='coefficients'):
    "Coefficient sequence (or None) as a 1-d float64 array."
    if c is None:
        return np.zeros(0)
    c = np.atleast_1d(np.array(c, dtype='float64'))
    if c.ndim != 1:
        raise InvalidParametersError(f'{name} must be a one-dimensional sequence.')
    return c


def check_order(value, name):
    "Validates a model order (or lag) as a non-negative integer and returns it as int."
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParametersError(f'{name} must be an integer, got {value!r}.')
    if value < 0:
        raise InvalidParametersError(f'{name} must be non-negative, got {value}.')
    return int(value)
