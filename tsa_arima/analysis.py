import numpy as np
from matplotlib import pyplot as plt
from scipy.stats import norm
from tsa_arima.exceptions import InsufficientDataError, InvalidParametersError, NumericalInstabilityError
from tsa_arima.tools.series import as_series, check_order


def autolags(y):
    """
    Determines a reasonable amount of lags to use for acf and pacf plots based on the amount of data.

    Parameters:
    - y: Data to calculate amount of lags from.
    """
    return min(int(round( 15*(len(y)/100)**0.25 )), len(y)-1)


def _resolve_max_lag(y, max_lag, name):
    if max_lag == -1 or max_lag == 'full': # whole dataset
        max_lag = len(y)-1
    elif max_lag == 'auto': # automatic trim
        max_lag = autolags(y)
    max_lag = check_order(max_lag, f'{name}: max_lag')
    if max_lag >= len(y):
        raise InsufficientDataError(f'{name}: max_lag={max_lag} must be smaller than the series length {len(y)}.')
    return max_lag


def center(y):
    """
    Subtracts the sample mean from y.

    Returns:
    - (ndarray, float): The centered series and the mean that was removed.
    """
    y = as_series(y)
    if len(y) == 0:
        raise InsufficientDataError('CENTER: cannot center an empty series.')
    mean = np.mean(y)
    return y - mean, mean


def acovf(y, max_lag='auto'):
    """
    Computes the biased sample auto-covariance of y at lags 0..max_lag.

    The series is mean-centered and c(k) = 1/N * sum_{t=0}^{N-k-1} x(t)x(t+k).

    Parameters:
    - y (array-like): Time series data.
    - max_lag (int or str): Largest lag. Can be 'auto', 'full', or an integer smaller than len(y).

    Returns:
    - acov (ndarray): Auto-covariances of length max_lag+1.
    """
    y = as_series(y)
    max_lag = _resolve_max_lag(y, max_lag, 'ACOVF')
    N = len(y)
    x, _ = center(y)

    acov = np.array([np.dot(x[:N-k], x[k:]) / N for k in range(max_lag+1)])
    if not np.all(np.isfinite(acov)):
        raise NumericalInstabilityError('ACOVF: non-finite auto-covariance, check the data for inf/nan.')
    return acov


def acf(y, max_lag='auto', sign_lvl=0.05, plot_it=False):
    """
    Computes the auto-correlation function (ACF) of a given time series.

    Parameters:
    - y (array-like): Time series data.
    - max_lag (int or str): Maximum lag for the ACF. Can be 'auto', 'full', or an integer.
    - sign_lvl (float): Significance level for the plotted confidence band, default is 0.05.
    - plot_it (bool): If True, plots the ACF. Default is False.

    Returns:
    - rho (array): ACF values at lags 0..max_lag.
    """
    if not 0 <= sign_lvl <= 1:
        raise InvalidParametersError('ACF: not a valid level of significance.')
    acov = acovf(y, max_lag)
    if acov[0] == 0:
        raise NumericalInstabilityError('ACF: the series has zero variance.')
    rho = acov / acov[0]

    if plot_it:
        _stem_with_band(rho, len(y), sign_lvl, start_lag=0)
        plt.title('ACF')

    return rho


def durbin_levinson(rho, order):
    """
    Runs the Durbin-Levinson recursion on an auto-correlation sequence.

    Starting from phi(1,1) = rho(1), each order k computes
        phi(k,k) = (rho(k) - sum_j phi(k-1,j) rho(k-j)) / (1 - sum_j phi(k-1,j) rho(j))
        phi(k,j) = phi(k-1,j) - phi(k,k) phi(k-1,k-j),   j = 1..k-1

    Parameters:
    - rho (array-like): Auto-correlations at lags 0..m with rho[0] = 1.
    - order (int): Final order of the recursion, at most m.

    Returns:
    - phi (ndarray): The final row phi(order,1..order), i.e. the AR(order) coefficients.
    - pacf (ndarray): phi(k,k) for k = 1..order.
    - ratio (float): prod_k (1 - phi(k,k)^2), the innovation variance relative to rho(0).
    """
    rho = np.asarray(rho, dtype='float64')
    order = check_order(order, 'DURBIN_LEVINSON: order')
    if order >= len(rho):
        raise InsufficientDataError(f'DURBIN_LEVINSON: order {order} needs at least {order+1} auto-correlations.')

    phi = np.zeros(0)
    pacf = np.zeros(order)
    ratio = 1.0
    for k in range(1, order+1):
        num = rho[k] - np.dot(phi, rho[k-1:0:-1])
        den = 1 - np.dot(phi, rho[1:k])
        if den == 0 or not np.isfinite(den):
            raise NumericalInstabilityError(f'DURBIN_LEVINSON: singular recursion at order {k}.')
        phi_kk = num / den
        phi = np.concatenate((phi - phi_kk * phi[::-1], [phi_kk]))
        pacf[k-1] = phi_kk
        ratio *= 1 - phi_kk**2

    if not np.all(np.isfinite(phi)):
        raise NumericalInstabilityError('DURBIN_LEVINSON: non-finite coefficients.')
    return phi, pacf, ratio


def pacf_rho(rho, max_lag=None):
    "PACF at lags 1..max_lag from precomputed auto-correlations (all available lags if max_lag is None)."
    rho = np.asarray(rho, dtype='float64')
    if max_lag is None:
        max_lag = len(rho)-1
    return durbin_levinson(rho, max_lag)[1]


def pacf(y, max_lag='auto', sign_lvl=0.05, plot_it=False, include_zero_lag=False):
    """
    Computes the partial auto-correlation function (PACF) of a given time series
    using the Durbin-Levinson recursion over the sample auto-correlations.

    Parameters:
    - y (array-like): Time series data.
    - max_lag (int or str): Maximum lag for the PACF. Can be 'auto', 'full', or an integer.
    - sign_lvl (float): Significance level for the plotted confidence band, default is 0.05.
    - plot_it (bool): If True, plots the PACF. Default is False.
    - include_zero_lag (bool): If True, the output starts with the value 1 at lag 0. Default is False.

    Returns:
    - phi (array): PACF values at lags 1..max_lag (0..max_lag if include_zero_lag).
    """
    y = as_series(y)
    max_lag = _resolve_max_lag(y, max_lag, 'PACF')
    rho = acf(y, max_lag, sign_lvl=sign_lvl)
    phi = pacf_rho(rho, max_lag)

    if include_zero_lag:
        phi = np.concatenate(([1.0], phi))

    if plot_it:
        _stem_with_band(phi, len(y), sign_lvl, start_lag=0 if include_zero_lag else 1)
        plt.title('PACF')

    return phi


def _stem_with_band(values, N, sign_lvl, start_lag):
    signScale = norm.ppf(1 - sign_lvl / 2, 0, 1)
    rangeLags = np.arange(start_lag, start_lag + len(values))
    maxRange = 1.1 if start_lag == 0 else max(np.max(np.abs(values)), signScale/np.sqrt(N)) * 1.2

    plt.stem(rangeLags, values)
    plt.xlabel('Lag')
    plt.ylabel('Amplitude')
    condInt = signScale * np.ones(len(rangeLags)) / np.sqrt(N)
    plt.plot(rangeLags, condInt, 'r--')
    plt.plot(rangeLags, -condInt, 'r--')
    plt.axis([start_lag, max(rangeLags[-1], start_lag+1), -maxRange, maxRange])
    plt.grid()


def plotACFnPACF(y, no_lags='auto', title_str=None, sign_lvl=0.05, realis=False, show=True, return_val=False):
    """
    Plots the ACF and PACF of the given data.

    Parameters:
    - y (array-like): The data to analyse.
    - no_lags (int or str, optional): Number of lags to be considered. Defaults to 'auto'.
    - title_str (str, optional): A string to be appended in the title of plots.
    - sign_lvl (float, optional): Significance level of the confidence bands. Defaults to 0.05.
    - realis (bool, optional): If True, the realisation is plotted above the ACF and PACF.
    - show (bool, optional): If True, calls plt.show() at the end.
    - return_val (bool, optional): If True, returns the computed ACF and PACF values.

    Returns:
    - tuple: (acf, pacf) if return_val is True.
    """
    if realis:
        plt.figure(figsize=(6, 9))
        pl = 3
        i = 1
        plt.subplot(pl, 1, i)
        plt.plot(y)
        plt.title(f'Realisation ({title_str})') if title_str else plt.title('Realisation')
        plt.grid()
    else:
        plt.figure(figsize=(6, 6))
        pl = 2
        i = 0

    plt.subplot(pl, 1, 1+i)
    acfEst = acf(y, no_lags, sign_lvl, plot_it=True)
    plt.title(f'ACF ({title_str})') if title_str else plt.title('ACF')

    plt.subplot(pl, 1, 2+i)
    pacfEst = pacf(y, no_lags, sign_lvl, plot_it=True)
    plt.title(f'PACF ({title_str})') if title_str else plt.title('PACF')

    plt.tight_layout()
    if show:
        plt.show()

    if return_val:
        return acfEst, pacfEst
