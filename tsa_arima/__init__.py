"""tsa_arima
=================

Estimation and simulation of ARIMA(p,d,q) models.

This file exposes the modules and the most used functions and classes:
differencing, sample auto-covariance/ACF/PACF, Yule-Walker AR estimation
through the Durbin-Levinson recursion, conditional sum of squares (CSS)
estimation of full ARIMA models and recursive simulation.
"""

from . import analysis, backends, diagnostics, differencing, exceptions, modelling, simulation

from .analysis import (
    acovf,
    acf,
    pacf,
    pacf_rho,
    durbin_levinson,
    center,
    plotACFnPACF,
)

from .differencing import (
    diff,
    diffinv,
    diff_log,
    integrate,
    lag,
)

from .modelling import (
    ARIMAParameters,
    ARIMAResult,
    ar,
    ar_params,
    residuals,
    css,
    fit,
    scipy_bfgs,
)

from .simulation import (
    arima_sim,
    simulate_params,
)

from .backends import (
    LinalgBackend,
    ScipyBackend,
    get_backend,
)

from .diagnostics import (
    whiteness_test,
    check_if_white,
    lbp_test,
    monti_test,
)

from .exceptions import (
    ArimaError,
    InsufficientDataError,
    InvalidParametersError,
    NonConvergenceError,
    NumericalInstabilityError,
)

__version__ = "0.1.0"

__all__ = [
    # modules
    'analysis', 'backends', 'diagnostics', 'differencing', 'exceptions', 'modelling', 'simulation',
    # analysis
    'acovf', 'acf', 'pacf', 'pacf_rho', 'durbin_levinson', 'center', 'plotACFnPACF',
    # differencing
    'diff', 'diffinv', 'diff_log', 'integrate', 'lag',
    # modelling
    'ARIMAParameters', 'ARIMAResult', 'ar', 'ar_params', 'residuals', 'css', 'fit', 'scipy_bfgs',
    # simulation
    'arima_sim', 'simulate_params',
    # backends
    'LinalgBackend', 'ScipyBackend', 'get_backend',
    # diagnostics
    'whiteness_test', 'check_if_white', 'lbp_test', 'monti_test',
    # exceptions
    'ArimaError', 'InsufficientDataError', 'InvalidParametersError', 'NonConvergenceError',
    'NumericalInstabilityError',
]
