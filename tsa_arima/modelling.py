import warnings
import numpy as np
import scipy.optimize as opt
from statsmodels.tools.numdiff import approx_fprime
from tsa_arima.analysis import acovf, durbin_levinson, plotACFnPACF
from tsa_arima.backends import get_backend
from tsa_arima.diagnostics import check_if_white, whiteness_test
from tsa_arima.differencing import diff, diffinv, filter
from tsa_arima.exceptions import (InsufficientDataError, InvalidParametersError,
                                  NonConvergenceError, NumericalInstabilityError)
from tsa_arima.simulation import simulate_params
from tsa_arima.tools.roots import is_invertible, is_stationary
from tsa_arima.tools.series import as_coefficients, as_series, check_order

# Optimizer status codes
CONVERGED = 0
MAXITER = 1
PRECISION_LOSS = 2
NAN_ENCOUNTERED = 3


class ARIMAParameters:
    """
    Parameters of the ARIMA(p,d,q) model

        ∇ᵈy(t) = c + phi1 ∇ᵈy(t-1) + ... + phip ∇ᵈy(t-p) + e(t) + theta1 e(t-1) + ... + thetaq e(t-q)

    with innovation variance sigma2. The coefficient arrays are read-only.

    Attributes:
    - intercept: The constant c.
    - ar: AR coefficients phi1..phip.
    - ma: MA coefficients theta1..thetaq.
    - sigma2: Innovation variance.
    - d: Differencing order.
    - order: The tuple (p, d, q).
    """
    def __init__(self, intercept=0.0, ar=None, ma=None, sigma2=1.0, d=None, order=None):
        ar = as_coefficients(ar, 'AR coefficients')
        ma = as_coefficients(ma, 'MA coefficients')
        if d is not None:
            d = check_order(d, 'ARIMAParameters: d')

        if order is not None:
            if len(order) != 3:
                raise InvalidParametersError(f'ARIMAParameters: order must be (p, d, q), got {order!r}.')
            p_, d_, q_ = (check_order(o, name) for o, name in zip(order, ('p', 'd', 'q')))
            if len(ar) != p_:
                raise InvalidParametersError(f'ARIMAParameters: {len(ar)} AR coefficients given for p={p_}.')
            if len(ma) != q_:
                raise InvalidParametersError(f'ARIMAParameters: {len(ma)} MA coefficients given for q={q_}.')
            if d is not None and d != d_:
                raise InvalidParametersError(f'ARIMAParameters: d={d} disagrees with the declared order {tuple(order)}.')
            d = d_
        elif d is None:
            d = 0

        sigma2 = float(sigma2)
        intercept = float(intercept)
        if not (np.isfinite(sigma2) and sigma2 >= 0):
            raise InvalidParametersError(f'ARIMAParameters: variance must be finite and non-negative, got {sigma2}.')
        if not (np.isfinite(intercept) and np.all(np.isfinite(ar)) and np.all(np.isfinite(ma))):
            raise InvalidParametersError('ARIMAParameters: coefficients must be finite.')

        ar.flags.writeable = False
        ma.flags.writeable = False
        self._intercept = intercept
        self._ar = ar
        self._ma = ma
        self._sigma2 = sigma2
        self._d = d

    intercept = property(lambda self: self._intercept)
    ar = property(lambda self: self._ar)
    ma = property(lambda self: self._ma)
    sigma2 = property(lambda self: self._sigma2)
    d = property(lambda self: self._d)
    p = property(lambda self: len(self._ar))
    q = property(lambda self: len(self._ma))

    @property
    def order(self):
        return (self.p, self.d, self.q)

    @property
    def vector(self):
        "The estimation vector [c, phi1..phip, theta1..thetaq]."
        return np.concatenate(([self.intercept], self.ar, self.ma))

    def __eq__(self, other):
        if not isinstance(other, ARIMAParameters):
            return NotImplemented
        return (self.order == other.order and self.intercept == other.intercept and self.sigma2 == other.sigma2
                and np.array_equal(self.ar, other.ar) and np.array_equal(self.ma, other.ma))

    def __repr__(self):
        return (f'ARIMAParameters(intercept={self.intercept!r}, ar={self.ar.tolist()!r}, '
                f'ma={self.ma.tolist()!r}, sigma2={self.sigma2!r}, d={self.d!r})')


def ar(y, order, backend=None):
    """
    Estimates the coefficients of an AR(p) model from the sample auto-covariances
    (Yule-Walker), by default with the Durbin-Levinson recursion.

    The innovation variance is updated at every order of the recursion,
        v(k) = v(k-1) * (1 - phi(k,k)^2),    v(0) = c(0).

    Parameters:
    - y (array-like): Time series data.
    - order (int): The AR order p, smaller than len(y).
    - backend (None, str or LinalgBackend): Optional linear-algebra backend solving the
        Toeplitz system instead; see tsa_arima.backends. The variance is then c(0) - sum phi(k)c(k).

    Returns:
    - phi (ndarray): AR coefficients phi1..phip.
    - sigma2 (float): Innovation variance estimate.
    """
    y = as_series(y)
    order = check_order(order, 'AR: order')
    if order >= len(y):
        raise InsufficientDataError(f'AR: order {order} needs a series longer than {len(y)}.')
    backend = get_backend(backend)

    acov = acovf(y, order)
    if order == 0:
        return np.zeros(0), float(acov[0])
    if acov[0] == 0:
        raise NumericalInstabilityError('AR: the series has zero variance.')

    if backend is None:
        phi, _, ratio = durbin_levinson(acov / acov[0], order)
        sigma2 = acov[0] * ratio
    else:
        phi = np.asarray(backend.solve_toeplitz(acov), dtype='float64')
        if phi.shape != (order,):
            raise InvalidParametersError(f'AR: backend returned {phi.shape} coefficients for order {order}.')
        sigma2 = acov[0] - np.dot(phi, acov[1:])

    # Rounding may leave a perfectly predictable series slightly below zero
    if -1e-12 * acov[0] < sigma2 < 0:
        sigma2 = 0.0
    if not np.isfinite(sigma2) or sigma2 < 0:
        raise NumericalInstabilityError(f'AR: invalid innovation variance {sigma2}.')
    return phi, float(sigma2)


def ar_params(y, order, backend=None):
    """
    AR(p) estimate packaged as ARIMAParameters. The sample mean m is mapped to
    the intercept c = m * (1 - sum(phi)).
    """
    y = as_series(y)
    phi, sigma2 = ar(y, order, backend=backend)
    return ARIMAParameters(np.mean(y) * (1 - np.sum(phi)), phi, None, sigma2)


def residuals(y, intercept, phi=None, theta=None):
    """
    Computes the one-step prediction residuals of an ARMA model conditionally on
    zero pre-sample residuals,

        e(t) = y(t) - c - sum_i phi_i y(t-i) - sum_j theta_j e(t-j),   t = max(p,q)..N-1.

    Any differencing should be done beforehand. The first max(p,q) residuals are zero.

    Parameters:
    - y (array-like): Time series data.
    - intercept (float): The constant c.
    - phi (array-like, optional): AR coefficients.
    - theta (array-like, optional): MA coefficients.

    Returns:
    - e (ndarray): Residuals, same length as y.
    """
    y = as_series(y)
    phi = as_coefficients(phi, 'AR coefficients')
    theta = as_coefficients(theta, 'MA coefficients')
    start = max(len(phi), len(theta))
    N = len(y)
    if N <= start:
        raise InsufficientDataError(f'RESIDUALS: need more than {start} observations, got {N}.')

    # AR part, then the MA recursion e(t) = u(t) - sum_j theta_j e(t-j) as a filter
    u = np.zeros(N)
    u[start:] = y[start:] - intercept
    for i, phi_i in enumerate(phi, 1):
        u[start:] -= phi_i * y[start-i:N-i]
    with np.errstate(over='ignore', invalid='ignore'):
        e = filter(1, np.concatenate(([1.0], theta)), u)

    if not np.all(np.isfinite(e)):
        raise NumericalInstabilityError('RESIDUALS: non-finite residual, the MA part is likely explosive.')
    return e


def css(y, params, p, q, normalize=False):
    """
    Conditional sum of squares of the residuals for the vector params = [c, phi1..phip, theta1..thetaq].

    Parameters:
    - y (array-like): Time series data (already differenced).
    - params (array-like): Parameter vector of length 1+p+q.
    - p, q (int): AR and MA orders.
    - normalize (bool): If True, divides by the number of residuals used. Default is False.

    Returns:
    - float: The objective value.
    """
    params = np.asarray(params, dtype='float64')
    if params.shape != (1+p+q,):
        raise InvalidParametersError(f'CSS: expected {1+p+q} parameters for p={p}, q={q}, got {params.shape}.')

    e = residuals(y, params[0], params[1:p+1], params[p+1:])[max(p, q):]
    with np.errstate(over='ignore'):
        S = np.sum(e**2)
    if normalize:
        S = S / len(e)
    if not np.isfinite(S):
        raise NumericalInstabilityError('CSS: non-finite sum of squares.')
    return float(S)


def scipy_bfgs(objective, gradient, x0, maxiter=200, gtol=1e-6, xrtol=1e-10):
    """
    Default optimizer: quasi-Newton BFGS from scipy.optimize.minimize.

    Any callable with this signature can be passed as `optimizer` to fit. It returns
    (x, status) or (x, status, info), status being one of CONVERGED, MAXITER,
    PRECISION_LOSS or NAN_ENCOUNTERED.
    """
    result = opt.minimize(objective, x0, jac=gradient, method='BFGS',
                          options={'maxiter': maxiter, 'gtol': gtol, 'xrtol': xrtol})
    status = result.status if result.status in (CONVERGED, MAXITER, PRECISION_LOSS, NAN_ENCOUNTERED) else NAN_ENCOUNTERED
    return result.x, status, result


def fit(y, p, d, q, optimizer=None, maxiter=200, gtol=1e-6, xrtol=1e-10):
    """
    Fits an ARIMA(p,d,q) model by minimizing the conditional sum of squares (CSS).

    The series is differenced d times, the AR part is initialised with the Yule-Walker
    estimate of order p, the MA part with zeros and the intercept with the sample mean of
    the differenced series. The normalised CSS is then minimised with a quasi-Newton
    method using central finite-difference gradients.

    Parameters:
    - y (array-like): Time series data.
    - p, d, q (int): AR order, differencing order and MA order.
    - optimizer (callable, optional): Replaces the default scipy_bfgs, see its docstring.
    - maxiter (int): Iteration budget of the optimizer. Default is 200.
    - gtol (float): Tolerance on the gradient norm. Default is 1e-6.
    - xrtol (float): Relative tolerance on the parameter step. Default is 1e-10.

    Returns:
    - ARIMAResult: The fitted model.

    Raises:
    - InsufficientDataError: The differenced series is too short for the orders.
    - NonConvergenceError: The iteration budget was exhausted.
    - NumericalInstabilityError: The optimizer reported a non-finite objective or ended at a point where it is non-finite.
    """
    y = as_series(y)
    p = check_order(p, 'FIT: p')
    d = check_order(d, 'FIT: d')
    q = check_order(q, 'FIT: q')

    x = diff(y, d)
    start = max(p, q)
    if len(x) <= start + 1:
        raise InsufficientDataError(f'FIT: {len(x)} observations after differencing are too few for p={p}, q={q}.')

    # A constant differenced series has no autocorrelation to start from
    phi_init = ar(x, p)[0] if np.var(x) > 0 else np.zeros(p)
    theta_init = np.zeros(q)
    theta_0 = np.concatenate(([np.mean(x)], phi_init, theta_init))

    def objective(theta):
        # Explosive trial points are rejected by the line search rather than aborting it
        try:
            return css(x, theta, p, q, normalize=True)
        except NumericalInstabilityError:
            return np.inf

    def gradient(theta):
        return np.ravel(approx_fprime(theta, objective, centered=True))

    if optimizer is None:
        optimizer = scipy_bfgs
    out = optimizer(objective, gradient, theta_0, maxiter=maxiter, gtol=gtol, xrtol=xrtol)
    theta_est, status = np.asarray(out[0], dtype='float64'), out[1]
    info = out[2] if len(out) > 2 else None

    if status == NAN_ENCOUNTERED or not np.all(np.isfinite(theta_est)) or not np.isfinite(objective(theta_est)):
        raise NumericalInstabilityError('FIT: the optimizer encountered a non-finite objective value.')
    if status not in (CONVERGED, PRECISION_LOSS):
        nit = getattr(info, 'nit', None)
        raise NonConvergenceError(f'FIT: no convergence within {maxiter} iterations.', x=theta_est, nit=nit)

    e = residuals(x, theta_est[0], theta_est[1:p+1], theta_est[p+1:])
    sigma2 = css(x, theta_est, p, q, normalize=True)
    params = ARIMAParameters(theta_est[0], theta_est[1:p+1], theta_est[p+1:], sigma2, d)

    if not is_stationary(params.ar):
        warnings.warn(f'FIT: the estimated AR part {params.ar.tolist()} is not stationary.', RuntimeWarning)
    if not is_invertible(params.ma):
        warnings.warn(f'FIT: the estimated MA part {params.ma.tolist()} is not invertible.', RuntimeWarning)

    std_errs = _calc_SE(x, theta_est, p, q, sigma2)
    return ARIMAResult(params, y, x, e, std_errs, status, info)


def _calc_SE(x, theta, p, q, sigma2):
    "Standard errors from the Jacobian of the residual vector, cov = sigma2 * (J'J)^-1."
    start = max(p, q)

    def pred_err(beta):
        return residuals(x, beta[0], beta[1:p+1], beta[p+1:])[start:]

    J = np.atleast_2d(approx_fprime(theta, pred_err, centered=True)).reshape(len(x) - start, len(theta))
    try:
        cov = np.linalg.inv(J.T @ J)
    except np.linalg.LinAlgError:
        warnings.warn('FIT: singular information matrix, standard errors are not available.', RuntimeWarning)
        return np.full(len(theta), np.nan)
    return np.sqrt(sigma2 * np.abs(np.diag(cov)))


class ARIMAResult:
    """
    Encapsulates an ARIMA model fitted with `fit`.

    Attributes:
    - params (ARIMAParameters): Estimated parameters.
    - intercept, ar, ma, sigma2, order: Shortcuts to the fields of params.
    - theta (ndarray): Estimated vector [c, phi, theta].
    - std_errs (ndarray): Standard errors of theta.
    - conf_ints (list): 95% confidence intervals of theta.
    - y (ndarray): The data the model was fitted to.
    - x (ndarray): The differenced data.
    - resid (ndarray): Residuals on the differenced data (the first max(p,q) are zero).
    - css (float): Conditional sum of squares at the estimate.
    - scores (dict): MSE, AIC, BIC and FPE.
    - status (int): Optimizer status code.
    - optimize_res (object): Raw optimizer result, if the optimizer provides one.

    Methods:
    - summary: Prints or returns a summary of the fit.
    - forecast: Forecasts the next values of y.
    - simulate: Simulates a new series from the fitted parameters.
    - check_residuals: Whiteness tests, and optionally ACF/PACF plots, of the residuals.
    """
    def __init__(self, params, y, x, resid, std_errs, status, optimize_res=None):
        self.params = params
        self.intercept = params.intercept
        self.ar = params.ar
        self.ma = params.ma
        self.sigma2 = params.sigma2
        self.order = params.order
        self.theta = params.vector
        self.std_errs = std_errs
        self.conf_ints = [[t - 1.96*s, t + 1.96*s] for t, s in zip(self.theta, std_errs)]
        self.y = y
        self.x = x
        self.resid = resid
        self.status = status
        self.optimize_res = optimize_res

        e = resid[max(params.p, params.q):]
        n = len(e)
        k = len(self.theta)
        self.css = float(np.sum(e**2))
        logL = -n/2 * np.log(self.css/n) - n/2 * np.log(2*np.pi) - n/2 if self.css > 0 else np.inf
        self.scores = {
            'MSE': self.css / n,
            'AIC': -2*logL + 2*k,
            'BIC': -2*logL + k*np.log(n),
            'FPE': ((n + k) / (n - k)) * np.var(e) if n > k else np.inf,
            }
        self.MSE = self.scores['MSE']
        self.AIC = self.scores['AIC']
        self.BIC = self.scores['BIC']
        self.FPE = self.scores['FPE']

    def __str__(self) -> str:
        return self.summary(return_val=True)

    def forecast(self, n=3):
        """
        Computes a forecast of the n next values of y, setting future innovations to zero.

        Parameters:
        - n (int): Number of future values to forecast. Default is 3.

        Returns:
        - forecasts (ndarray): The n future values, on the scale of y.
        """
        n = check_order(n, 'FORECAST: n')
        p, d, q = self.order
        x = np.concatenate((self.x, np.zeros(n)))
        e = np.concatenate((self.resid, np.zeros(n)))
        N = len(self.x)
        for t in range(N, N+n):
            x[t] = self.intercept + np.dot(self.ar, x[t-p:t][::-1]) + np.dot(self.ma, e[t-q:t][::-1])

        if d == 0:
            return x[N:]
        return diffinv(x, d, self.y[:d])[-n:] if n else np.zeros(0)

    def simulate(self, n, rng, noise_fn=None):
        "Simulates n values from the fitted model, see tsa_arima.simulation.simulate_params."
        return simulate_params(self.params, n, rng, noise_fn=noise_fn)

    def check_residuals(self, K=20, alpha=0.05, plot_it=False, return_val=False):
        """
        Runs the whiteness tests on the residuals used in the fit. K is capped below the
        number of residuals. With plot_it, their ACF and PACF are plotted as well.
        """
        e = self.resid[max(self.params.p, self.params.q):]
        K = min(K, len(e) - 1)
        if plot_it:
            plotACFnPACF(e, K, title_str='Residuals')
        return whiteness_test(e, alpha, K, return_val=return_val)

    def summary(self, return_val=False):
        p, d, q = self.order
        model_string = f'Discrete-time ARIMA({p},{d},{q}) model: '
        lhs = '∇' + _to_superscript(d, sign='') + 'y(t)' if d > 0 else 'y(t)'
        lhs_A = f'A(z){lhs}' if p else lhs
        rhs = 'c + C(z)e(t)' if q else 'c + e(t)'
        model_string += f'{lhs_A} = {rhs}'

        errs = self.std_errs
        lines = [f'c = {np.round(self.intercept, 4)}(±{np.round(errs[0], 4)})']
        if p:
            lines.append('A(z) = ' + _poly_to_string(-self.ar, errs[1:p+1]))
        if q:
            lines.append('C(z) = ' + _poly_to_string(self.ma, errs[p+1:]))

        scores = '  '.join(f'{name} : {np.round(score, 3)}' for name, score in self.scores.items())

        e = self.resid[max(p, q):]
        if len(e) > 1 and np.var(e) > 0:
            K = min(20, len(e) - 1)
            verdict = 'white' if check_if_white(e, K, return_val=True) else 'not white'
            scores += f'\nResiduals (Monti test, K={K}): {verdict}'

        summary = (model_string + '\n\n' + '\n'.join(lines) + '\n\n'
                   + f'Innovation variance: {np.round(self.sigma2, 4)}\n' + scores + '\n')

        if return_val:
            return summary

        print(summary)


def _to_superscript(num, sign='⁻'):
    superscript_map = {
        '0': '⁰', '1': '¹', '2': '²', '3': '³', '4': '⁴', '5': '⁵', '6': '⁶', '7': '⁷', '8': '⁸', '9': '⁹'
    }
    return sign + ''.join([superscript_map[char] for char in str(num)])


def _poly_to_string(coeffs, errs):
    "Formats 1 + c1 z⁻¹ + ... with standard errors as a readable string."
    terms = ['1']
    for i, (coef, err) in enumerate(zip(coeffs, errs), 1):
        coef = np.round(float(coef), 4)
        if coef == 0:
            continue
        terms.append(f'{coef}(±{np.round(err, 4)})·z' + _to_superscript(i))
    return ' + '.join(terms).replace(' + -', ' - ')
