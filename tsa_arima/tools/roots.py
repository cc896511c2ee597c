import numpy as np


def poly_roots(coeffs, sign):
    """
    Roots of the lag polynomial 1 + sign*(c1 z + c2 z^2 + ... + cp z^p).
    """
    coeffs = np.atleast_1d(np.asarray(coeffs, dtype='float64'))
    if len(coeffs) == 0 or not np.any(coeffs):
        return np.zeros(0, dtype=complex)
    poly = np.concatenate(([1.0], sign * coeffs))
    return np.roots(poly[::-1])


def is_stationary(phi):
    "True if all roots of 1 - phi1 z - ... - phip z^p lie outside the unit circle."
    return bool(np.all(np.abs(poly_roots(phi, -1)) > 1.0))


def is_invertible(theta):
    "True if all roots of 1 + theta1 z + ... + thetaq z^q lie outside the unit circle."
    return bool(np.all(np.abs(poly_roots(theta, 1)) > 1.0))
