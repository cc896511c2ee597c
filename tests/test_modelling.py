import numpy as np
import pytest
import scipy.optimize as opt
from numpy.testing import assert_allclose, assert_array_equal

from tsa_arima.analysis import center
from tsa_arima.exceptions import (InsufficientDataError, InvalidParametersError,
                                  NonConvergenceError, NumericalInstabilityError)
from tsa_arima.modelling import (CONVERGED, MAXITER, NAN_ENCOUNTERED, PRECISION_LOSS, ARIMAParameters,
                                 ARIMAResult, ar, ar_params, css, fit, residuals)
from tsa_arima.simulation import arima_sim

# Residuals of an AR(3) fit to the AR3 series, collected from R's arima() routine
AR3_RES = [0.0, 0.0, 0.0, 46.2603808, -7.7972931, 28.510325, -57.7569706, 14.2417414,
           31.2183008, 48.5090956, -2.716499, 38.8984537, -5.402662, -8.4669355,
           -62.7063041, 4.5063279, -14.4924325, 31.271378, -29.2554603, -54.8047308]


@pytest.fixture(scope='module')
def arma21_series():
    rng = np.random.default_rng(7)
    return arima_sim(3000, [0.5, -0.3], [0.4], 0, rng=rng)


# --- AR estimator ---

def test_ar_recovers_ar2_coefficients(rng):
    y = arima_sim(5000, [0.7, 0.2], None, 0, rng=rng)
    phi, sigma2 = ar(y, 2)
    assert_allclose(phi, [0.7, 0.2], atol=0.05)
    assert sigma2 == pytest.approx(1.0, abs=0.1)


@pytest.mark.parametrize('backend', ['scipy', 'cholesky'])
def test_ar_backends_agree_with_recursion(rng, backend):
    y = arima_sim(800, [0.4, 0.3, -0.2], [0.3], 0, rng=rng)
    phi, sigma2 = ar(y, 3)
    phi_b, sigma2_b = ar(y, 3, backend=backend)
    assert_allclose(phi_b, phi, rtol=1e-8, atol=1e-10)
    assert sigma2_b == pytest.approx(sigma2, rel=1e-8)


def test_ar_order_zero_is_the_variance(ar3_series):
    phi, sigma2 = ar(ar3_series, 0)
    assert len(phi) == 0
    assert sigma2 == pytest.approx(np.var(ar3_series))


def test_ar_order_too_large():
    with pytest.raises(InsufficientDataError):
        ar([1.0, 2.0, 0.5], 3)
    with pytest.raises(InvalidParametersError):
        ar([1.0, 2.0, 0.5], -1)


def test_ar_params_maps_mean_to_intercept(ar3_series):
    params = ar_params(ar3_series, 2)
    assert params.order == (2, 0, 0)
    assert params.intercept == pytest.approx(np.mean(ar3_series) * (1 - np.sum(params.ar)))


# --- ARMA residual engine ---

def test_residuals_ar3(ar3_series):
    y, _ = center(ar3_series)
    e = residuals(y, -5.954353, [0.67715294, -0.44171525, 0.08249936])
    assert len(e) == len(AR3_RES)
    assert_allclose(e, AR3_RES, atol=1e-3)


def test_residuals_start_at_max_order():
    y = [1.0, 1.2, 1.4, 1.6, 1.4]
    e = residuals(y, 0.0, [0.6], [0.3, 0.1])
    assert_array_equal(e[:2], [0.0, 0.0])
    # e(2) = 1.4 - 0.6*1.2, e(3) = 1.6 - 0.6*1.4 - 0.3*e(2)
    assert e[2] == pytest.approx(0.68)
    assert e[3] == pytest.approx(1.6 - 0.84 - 0.3*0.68)


def test_css_is_sum_of_used_squared_residuals(ar3_series):
    params = [2.0, 0.5, -0.2, 0.3]
    e = residuals(ar3_series, 2.0, [0.5, -0.2], [0.3])[2:]
    assert css(ar3_series, params, 2, 1) == pytest.approx(np.sum(e**2))
    assert css(ar3_series, params, 2, 1, normalize=True) == pytest.approx(np.mean(e**2))


def test_css_rejects_wrong_vector_length(ar3_series):
    with pytest.raises(InvalidParametersError):
        css(ar3_series, [0.0, 0.5], 2, 1)


def test_residuals_explosive_ma(rng):
    y = rng.normal(size=1000)
    with pytest.raises(NumericalInstabilityError):
        residuals(y, 0.0, None, [10.0])


def test_residuals_too_short():
    with pytest.raises(InsufficientDataError):
        residuals([1.0, 2.0], 0.0, [0.5, 0.1])


# --- ARIMA estimator ---

def test_fit_ar2_matches_css_reference(ar3_series):
    # R: arima(x, order=c(2, 0, 0), method="CSS"), intercept transformed to mean*(1 - sum(phi))
    model = fit(ar3_series, 2, 0, 0)
    assert model.intercept == pytest.approx(29.3546, abs=1e-2)
    assert_allclose(model.ar, [0.6465575, -0.3452993], atol=1e-3)
    assert len(model.ma) == 0


def test_fit_arma11_matches_css_reference(ar3_series):
    model = fit(ar3_series, 1, 0, 1)
    assert model.intercept == pytest.approx(24.18111, abs=2e-2)
    assert model.ar[0] == pytest.approx(0.3596548, abs=2e-3)
    assert model.ma[0] == pytest.approx(0.2880067, abs=2e-3)


def test_fit_recovers_simulated_arma21(arma21_series):
    model = fit(arma21_series, 2, 0, 1)
    assert isinstance(model, ARIMAResult)
    assert model.order == (2, 0, 1)
    assert model.status in (CONVERGED, PRECISION_LOSS)
    assert_allclose(model.ar, [0.5, -0.3], atol=0.12)
    assert_allclose(model.ma, [0.4], atol=0.12)
    assert model.intercept == pytest.approx(0.0, abs=0.15)
    assert model.sigma2 == pytest.approx(1.0, abs=0.1)
    assert np.all(np.isfinite(model.std_errs))


@pytest.mark.parametrize('level', [50.0, -20.0])
@pytest.mark.parametrize('seed', [1, 2, 3])
def test_fit_arma11_with_non_zero_level(level, seed):
    y = arima_sim(2000, [0.5], [0.4], 0, rng=np.random.default_rng(seed)) + level
    model = fit(y, 1, 0, 1)
    assert model.status in (CONVERGED, PRECISION_LOSS)
    assert model.ar[0] == pytest.approx(0.5, abs=0.1)
    assert model.ma[0] == pytest.approx(0.4, abs=0.1)
    assert model.intercept / (1 - model.ar[0]) == pytest.approx(level, abs=0.5)


def test_fit_arma21_with_non_zero_level(arma21_series):
    model = fit(arma21_series + 10.0, 2, 0, 1)
    assert_allclose(model.ar, [0.5, -0.3], atol=0.12)
    assert_allclose(model.ma, [0.4], atol=0.12)
    assert model.intercept / (1 - np.sum(model.ar)) == pytest.approx(10.0, abs=0.3)


def test_fit_is_deterministic(arma21_series):
    first = fit(arma21_series, 2, 0, 1)
    second = fit(arma21_series, 2, 0, 1)
    assert_array_equal(first.theta, second.theta)
    assert first.sigma2 == second.sigma2


def test_fit_with_differencing_and_forecast(rng):
    y = arima_sim(1500, [0.6], None, 1, rng=rng)
    model = fit(y, 1, 1, 0)
    assert model.order == (1, 1, 0)
    assert len(model.x) == len(y) - 1
    assert model.ar[0] == pytest.approx(0.6, abs=0.1)

    forecasts = model.forecast(5)
    assert len(forecasts) == 5
    # One-step forecast on the original scale: y(N-1) + c + phi*(y(N-1) - y(N-2))
    expected = y[-1] + model.intercept + model.ar[0] * (y[-1] - y[-2])
    assert forecasts[0] == pytest.approx(expected)


def test_fit_budget_exhausted(arma21_series):
    with pytest.raises(NonConvergenceError) as excinfo:
        fit(arma21_series, 2, 0, 1, maxiter=1)
    assert excinfo.value.x is not None


def test_fit_with_custom_optimizer(ar3_series):
    def lbfgs(objective, gradient, x0, maxiter, gtol, xrtol):
        res = opt.minimize(objective, x0, jac=gradient, method='L-BFGS-B', options={'maxiter': maxiter})
        return res.x, CONVERGED if res.success else MAXITER

    model = fit(ar3_series, 2, 0, 0, optimizer=lbfgs)
    assert_allclose(model.ar, [0.6465575, -0.3452993], atol=1e-2)
    assert model.optimize_res is None


@pytest.mark.parametrize('status, error', [(MAXITER, NonConvergenceError),
                                           (NAN_ENCOUNTERED, NumericalInstabilityError)])
def test_fit_maps_optimizer_status(ar3_series, status, error):
    def give_up(objective, gradient, x0, **options):
        return x0, status

    with pytest.raises(error):
        fit(ar3_series, 1, 0, 1, optimizer=give_up)


def test_fit_surfaces_non_finite_objective(rng):
    y = rng.normal(size=2000)

    def explosive_step(objective, gradient, x0, **options):
        x = np.array(x0)
        x[-1] = 50.0
        return x, CONVERGED if np.isfinite(objective(x)) else NAN_ENCOUNTERED

    with pytest.raises(NumericalInstabilityError):
        fit(y, 1, 0, 1, optimizer=explosive_step)


def test_fit_rejects_explosive_end_point(rng):
    y = rng.normal(size=2000)

    def stop_at_explosive_point(objective, gradient, x0, **options):
        x = np.array(x0)
        x[-1] = 50.0
        return x, CONVERGED

    with pytest.raises(NumericalInstabilityError):
        fit(y, 1, 0, 1, optimizer=stop_at_explosive_point)


def test_fit_exact_linear_trend():
    y = 1.0 + 2.0*np.arange(30)
    model = fit(y, 1, 1, 0)
    assert model.intercept == pytest.approx(2.0)
    assert model.ar[0] == pytest.approx(0.0, abs=1e-8)
    assert model.sigma2 == pytest.approx(0.0, abs=1e-12)
    assert_allclose(model.forecast(3), [61.0, 63.0, 65.0])


def test_fit_too_short():
    with pytest.raises(InsufficientDataError):
        fit([1.0, 2.0, 3.0], 2, 0, 1)
    with pytest.raises(InsufficientDataError):
        fit([1.0, 2.0, 3.0], 0, 3, 0)


def test_summary_and_simulate(ar3_series, rng):
    model = fit(ar3_series, 1, 0, 1)
    text = model.summary(return_val=True)
    assert 'ARIMA(1,0,1)' in text
    assert 'A(z)' in text and 'C(z)' in text
    assert str(model) == text
    assert set(model.scores) == {'MSE', 'AIC', 'BIC', 'FPE'}
    assert 'Residuals (Monti test, K=18)' in text

    y = model.simulate(50, rng)
    assert len(y) == 50


def test_check_residuals(arma21_series, capsys):
    model = fit(arma21_series, 2, 0, 1)
    results = model.check_residuals(K=10, alpha=0.001, return_val=True)
    assert set(results) == {'Ljung-Box-Pierce', 'Monti'}
    assert all(deemed_white for deemed_white, Q, chiV in results.values())

    model.check_residuals(K=10)
    assert 'Monti' in capsys.readouterr().out


# --- parameter type ---

def test_parameters_check_declared_order():
    with pytest.raises(InvalidParametersError):
        ARIMAParameters(0.0, [0.5], [0.1], 1.0, order=(2, 0, 1))
    with pytest.raises(InvalidParametersError):
        ARIMAParameters(0.0, [0.5], [0.1, 0.2], 1.0, order=(1, 0, 1))
    params = ARIMAParameters(0.0, [0.5], [0.1], 1.0, order=(1, 2, 1))
    assert params.order == (1, 2, 1)
    assert ARIMAParameters(0.0, [0.5], [0.1], 1.0, d=2, order=(1, 2, 1)).d == 2
    with pytest.raises(InvalidParametersError):
        ARIMAParameters(0.0, [0.5], [0.1], 1.0, d=1, order=(1, 2, 1))


def test_parameters_reject_negative_variance():
    with pytest.raises(InvalidParametersError):
        ARIMAParameters(0.0, [0.5], None, -1.0)


def test_parameters_are_read_only():
    params = ARIMAParameters(1.0, [0.5, 0.1], [0.2], 2.0)
    with pytest.raises(ValueError):
        params.ar[0] = 0.0
    with pytest.raises(AttributeError):
        params.sigma2 = 3.0
    assert_array_equal(params.vector, [1.0, 0.5, 0.1, 0.2])
    assert params == ARIMAParameters(1.0, [0.5, 0.1], [0.2], 2.0)
