import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


# AR(3) series with reference results from R's arima(..., method="CSS")
AR3 = np.array([
    149.8228533548, 86.8388399871, 42.3116899484, 76.6796578536, 60.3665347774,
    66.7733563129, -5.1144504108, 14.0294086329, 76.2517878809, 121.2898170491,
    74.65663878, 69.9331198692, 46.7476543397, 26.2225173663, -32.0638217183,
    2.8335240789, 31.5182582874, 76.4827451823, 36.6122657518, -33.430444607,
])


@pytest.fixture
def ar3_series():
    return AR3.copy()
