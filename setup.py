from setuptools import setup


setup(
    name='tsa-arima',
    version='0.1.0',
    description='Estimation and simulation of ARIMA time series models',
    packages=['tsa_arima', 'tsa_arima.tools'],
    python_requires='>=3.9',
    install_requires=[
        "matplotlib",
        "numpy",
        "scipy>=1.11",
        "statsmodels",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
