import numpy as np
import scipy.signal as signal
from tsa_arima.exceptions import InsufficientDataError, InvalidParametersError
from tsa_arima.tools.series import as_series, check_order


def filter(B, A, X, remove=False, axis=-1):
    """
    Applies a filter on the form Y = B/A * X, starting from a zero initial state.

    Parameters:
    - B (int, list, or ndarray): Numerator coefficients of the filter. If an integer, it will be converted to a list.
    - A (int, list, or ndarray): Denominator coefficients of the filter. If an integer, it will be converted to a list.
    - X (ndarray): Input data to be filtered.
    - remove (bool or int): Determines the removal of initial values in the output.
        * False (default): No values are removed.
        * True: Removes the len(B)-1 initial values that depend on the zero initial state.
        * int: Removes the specified number of initial values.
    - axis (int): Axis along which the filter is applied. Default is -1.

    Returns:
    - ndarray: Filtered data.
    """
    if isinstance(B, int): B = [B] # If integers are given
    if isinstance(A, int): A = [A]
    if len(B)==0: B = [0]
    if len(A)==0: A = [1]
    B = np.array(B, dtype='float64')
    A = np.array(A, dtype='float64')
    X = np.array(X, dtype='float64')

    Y = signal.lfilter(B, A, X, axis=axis)

    if remove:
        if type(remove)==int:
            Y = Y[remove:]
        elif type(remove)==bool:
            Y = Y[len(B)-1:]
    return Y


def diff(y, d=1):
    """
    Differences the series y d times, each step forming x(t) - x(t-1).

    Parameters:
    - y (array-like): Series to difference.
    - d (int): Number of differences. d=0 returns the values unchanged.

    Returns:
    - ndarray: Differenced series of length len(y)-d.
    """
    y = as_series(y)
    d = check_order(d, 'DIFF: d')
    if d == 0:
        return y
    if d >= len(y):
        raise InsufficientDataError(f'DIFF: cannot difference {d} times a series of length {len(y)}.')

    for _ in range(d):
        y = filter([1, -1], 1, y, remove=True)
    return y


def diffinv(y, d, seeds):
    """
    Reverses d steps of differencing by repeated cumulative summation.

    Parameters:
    - y (array-like): Series differenced d times.
    - d (int): Number of differences to undo.
    - seeds (array-like): The d leading values x(0),...,x(d-1) of the original series.

    Returns:
    - ndarray: The reconstructed series of length len(y)+d.
    """
    y = as_series(y)
    d = check_order(d, 'DIFFINV: d')
    seeds = np.atleast_1d(np.array(seeds, dtype='float64')) if d else np.zeros(0)
    if len(seeds) != d:
        raise InvalidParametersError(f'DIFFINV: expected {d} seed values, got {len(seeds)}.')

    # First value of the original series differenced k times, for k = 0..d-1
    heads = []
    level = seeds
    for _ in range(d):
        heads.append(level[0])
        level = np.diff(level)

    x = y
    for head in reversed(heads):
        x = np.concatenate(([head], head + np.cumsum(x)))
    return x


def integrate(y, d=1):
    "Cumulatively sums y d times, keeping its length."
    y = as_series(y)
    d = check_order(d, 'INTEGRATE: d')
    for _ in range(d):
        y = np.cumsum(y)
    return y


def lag(y, tau):
    "Returns y(t) for t >= tau, i.e. the series with its first tau values dropped."
    y = as_series(y)
    tau = check_order(tau, 'LAG: tau')
    if tau >= len(y):
        raise InsufficientDataError(f'LAG: tau={tau} leaves nothing of a series of length {len(y)}.')
    return y[tau:]


def diff_log(y):
    "Differences of the logarithm, ln x(t) - ln x(t-1). All values must be positive."
    y = as_series(y)
    if np.any(y <= 0):
        raise InvalidParametersError('DIFF_LOG: all values must be positive.')
    return diff(np.log(y), 1)
