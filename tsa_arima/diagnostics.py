import numpy as np
from scipy.stats import chi2
from tsa_arima.analysis import acf, pacf
from tsa_arima.exceptions import InsufficientDataError, InvalidParametersError
from tsa_arima.tools.series import as_series, check_order


def _check_args(data, K, alpha, name):
    data = as_series(data)
    K = check_order(K, f'{name}: K')
    if K == 0:
        raise InvalidParametersError(f'{name}: K must be at least 1.')
    if K >= len(data):
        raise InsufficientDataError(f'{name}: K={K} correlations need more than {len(data)} samples.')
    if not 0 < alpha < 1:
        raise InvalidParametersError(f'{name}: not a valid level of significance.')
    return data


def lbp_test(data, K=20, alpha=0.05):
    """
    Computes the modified Ljung-Box-Pierce statistic using K considered correlations.

    Args:
    - data: The input data, typically the residual of a fitted model.
    - K: Number of correlations to consider. Default is 20.
    - alpha: Significance level for the test. Default is 0.05.

    Returns:
    - deemedWhite: True if the sequence is deemed white.
    - Q: The Q value.
    - chiV: The chi2 significance level.
    """
    data = _check_args(data, K, alpha, 'LBP_TEST')
    N = len(data)
    r = acf(data, K)[1:]

    Q = N * (N + 2) * np.sum(r**2 / (N - np.arange(1, K+1)))
    chiV = chi2.ppf(1 - alpha, K)
    deemedWhite = bool(Q < chiV)
    return deemedWhite, Q, chiV


def monti_test(data, K=20, alpha=0.05):
    """
    The function computes the Monti statistic using K considered
    partial correlations. With significance alpha, one may reject the hypothesis
    that the residual is white if Q > chi^2_{1-alpha}(K).

    The function returns deemed_white = True if the sequence is deemed white,
    together with the Q value and the chi2 significance level.
    """
    data = _check_args(data, K, alpha, 'MONTI_TEST')
    N = len(data)
    r = pacf(data, K)
    Q = N * (N + 2) * np.sum(r**2 / (N - np.arange(1, K+1)))
    chiV = chi2.ppf(1-alpha, K)
    deemed_white = bool(Q < chiV)

    return deemed_white, Q, chiV


def whiteness_test(data, alpha=0.05, K=20, return_val=False):
    """
    Runs the Ljung-Box-Pierce and Monti tests on data, typically the residual of a fitted model.
    The significance level indicates the likelihood that the signal is white but fails the test.

    Returns:
    - dict (only if return_val): Test name mapped to (deemed_white, Q, chiV). Otherwise the outcome is printed.
    """
    results = {
        'Ljung-Box-Pierce': lbp_test(data, K, alpha),
        'Monti': monti_test(data, K, alpha),
        }
    if return_val:
        return results

    print(f"Whiteness test with {alpha*100}% significance")
    for name, (S, Q, chiV) in results.items():
        print(f"  {name + ' test:':<24}{S} (white if {Q:.2f} < {chiV:.2f})")


def check_if_white(data, K=20, alpha=0.05, return_val=False):
    "Monti-test decision on the whiteness of data, printed or returned if return_val is True."
    deemed_white, Q, chiV = monti_test(data, K, alpha)
    if return_val:
        return deemed_white

    verdict, relation = ('deemed to be WHITE', '<') if deemed_white else ('NOT deemed to be white', '>=')
    print(f"The data is {verdict} according to the Monti-test ({Q:.2f} {relation} {chiV:.2f}).")
