"""
Linear-algebra backends for the Yule-Walker system.

The AR estimator in tsa_arima.modelling solves the Yule-Walker equations
with the Durbin-Levinson recursion and needs no backend at all. A backend
is an alternative path for the same system:

    [c(0)   c(1)   ... c(p-1)] [phi(1)]   [c(1)]
    [c(1)   c(0)   ... c(p-2)] [phi(2)] = [c(2)]
    [ ...                    ] [ ...  ]   [ ...]
    [c(p-1) c(p-2) ... c(0)  ] [phi(p)]   [c(p)]

Any object with the two methods of LinalgBackend can be passed as the
`backend` argument of `ar`.
"""

import numpy as np
import scipy.linalg as linalg
from tsa_arima.exceptions import InsufficientDataError, InvalidParametersError, NumericalInstabilityError


class LinalgBackend:
    """
    Interface of a linear-algebra backend.

    Methods:
    - solve_toeplitz(acov): AR coefficients phi(1..p) from auto-covariances c(0..p).
    - cholesky(matrix): Lower triangular Cholesky factor of a symmetric positive definite matrix.
    """
    name = 'abstract'

    def solve_toeplitz(self, acov):
        raise NotImplementedError

    def cholesky(self, matrix):
        raise NotImplementedError

    def __repr__(self):
        return f'{type(self).__name__}({self.name!r})'


class ScipyBackend(LinalgBackend):
    """
    Backend built on scipy.linalg.

    Parameters:
    - method (str): 'levinson' uses scipy.linalg.solve_toeplitz (Levinson-Durbin in compiled code),
        'cholesky' forms the Toeplitz matrix and solves it through its Cholesky factor.
    """
    def __init__(self, method='levinson'):
        if method not in ('levinson', 'cholesky'):
            raise InvalidParametersError(f"ScipyBackend: method must be 'levinson' or 'cholesky', got {method!r}.")
        self.method = method
        self.name = 'scipy' if method == 'levinson' else 'cholesky'

    def solve_toeplitz(self, acov):
        acov = np.asarray(acov, dtype='float64')
        if len(acov) < 1:
            raise InsufficientDataError('solve_toeplitz: need at least the lag 0 auto-covariance.')
        p = len(acov) - 1
        if p == 0:
            return np.zeros(0)

        if self.method == 'levinson':
            try:
                phi = linalg.solve_toeplitz(acov[:-1], acov[1:])
            except np.linalg.LinAlgError as e:
                raise NumericalInstabilityError(f'solve_toeplitz: singular Yule-Walker system ({e}).') from e
        else:
            R = linalg.toeplitz(acov[:-1])
            L = self.cholesky(R)
            phi = linalg.cho_solve((L, True), acov[1:])

        if not np.all(np.isfinite(phi)):
            raise NumericalInstabilityError('solve_toeplitz: non-finite AR coefficients.')
        return phi

    def cholesky(self, matrix):
        try:
            return linalg.cholesky(np.asarray(matrix, dtype='float64'), lower=True)
        except np.linalg.LinAlgError as e:
            raise NumericalInstabilityError(f'cholesky: matrix is not positive definite ({e}).') from e


def get_backend(backend):
    """
    Resolves a backend argument.

    Parameters:
    - backend (None, str or LinalgBackend): None selects the pure Durbin-Levinson recursion (returns None),
        'scipy' and 'cholesky' select the corresponding ScipyBackend, an object is returned as is.
    """
    if backend is None or isinstance(backend, LinalgBackend):
        return backend
    if backend == 'scipy':
        return ScipyBackend('levinson')
    if backend == 'cholesky':
        return ScipyBackend('cholesky')
    if hasattr(backend, 'solve_toeplitz') and hasattr(backend, 'cholesky'):
        return backend
    raise InvalidParametersError(f'Unknown linear-algebra backend {backend!r}.')
