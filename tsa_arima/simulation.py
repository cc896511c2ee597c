import numpy as np
from tsa_arima.differencing import filter, integrate
from tsa_arima.exceptions import InvalidParametersError, NumericalInstabilityError
from tsa_arima.tools.series import as_coefficients, check_order


def standard_normal(rng):
    "Default noise source, one N(0,1) draw from the generator rng."
    return rng.standard_normal()


def arima_sim(n, ar=None, ma=None, d=0, noise_fn=None, rng=None, order=None, intercept=0.0):
    """
    Simulates an ARIMA time series

        y(t) = c + phi1 y(t-1) + ... + phip y(t-p) + e(t) + theta1 e(t-1) + ... + thetaq e(t-q)

    integrated d times. Innovations are drawn one at a time, in time order, from
    noise_fn(rng), so a generator with a fixed seed always yields the same series.
    A burn-in of max(p,q) samples is simulated from a zero initial state and discarded.

    Parameters:
    - n (int): Length of the simulated series, at least 1.
    - ar (array-like, optional): AR coefficients phi1..phip.
    - ma (array-like, optional): MA coefficients theta1..thetaq.
    - d (int): Number of integrations. Default is 0.
    - noise_fn (callable, optional): Function of the generator returning one innovation. Default is N(0,1).
    - rng (numpy.random.Generator or int): Caller-owned generator; an int is used as a seed for a new one.
    - order (tuple, optional): Declared (p, d, q); the coefficient lengths and d must agree with it.
    - intercept (float): The constant c. Default is 0.

    Returns:
    - ndarray: The simulated series of length n.
    """
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n <= 0:
        raise InvalidParametersError(f'ARIMA_SIM: n must be a positive integer, got {n!r}.')
    phi = as_coefficients(ar, 'AR coefficients')
    theta = as_coefficients(ma, 'MA coefficients')
    d = check_order(d, 'ARIMA_SIM: d')

    if order is not None:
        if len(order) != 3:
            raise InvalidParametersError(f'ARIMA_SIM: order must be (p, d, q), got {order!r}.')
        p_, d_, q_ = order
        if len(phi) != p_ or len(theta) != q_ or d != d_:
            raise InvalidParametersError(
                f'ARIMA_SIM: coefficients of order ({len(phi)}, {d}, {len(theta)}) do not match the declared order {tuple(order)}.')

    if rng is None:
        raise InvalidParametersError('ARIMA_SIM: a random generator must be supplied.')
    if isinstance(rng, (int, np.integer)):
        rng = np.random.default_rng(rng)
    if noise_fn is None:
        noise_fn = standard_normal

    burn_in = max(len(phi), len(theta))
    e = np.array([noise_fn(rng) for _ in range(burn_in + n)], dtype='float64')

    A = np.concatenate(([1.0], -phi))
    C = np.concatenate(([1.0], theta))
    with np.errstate(over='ignore', invalid='ignore'):
        y = filter(C, A, e)
        if intercept:
            y = y + filter(1, A, np.full(len(e), float(intercept)))
    y = y[burn_in:]

    if not np.all(np.isfinite(y)):
        raise NumericalInstabilityError('ARIMA_SIM: the simulated series diverged, the AR part is likely explosive.')

    if d > 0:
        y = integrate(y, d)
    return y


def simulate_params(params, n, rng, noise_fn=None):
    """
    Simulates n values from a parameter set such as ARIMAParameters.

    Parameters:
    - params: Object with attributes intercept, ar, ma, sigma2 and d.
    - n (int): Length of the simulated series.
    - rng (numpy.random.Generator or int): Caller-owned generator or seed.
    - noise_fn (callable, optional): Noise source. Default is N(0, sigma2).

    Returns:
    - ndarray: The simulated series.
    """
    if noise_fn is None:
        scale = np.sqrt(params.sigma2)
        noise_fn = lambda g: scale * g.standard_normal()
    return arima_sim(n, params.ar, params.ma, params.d, noise_fn, rng, intercept=params.intercept)
