"""
Forecast Module

Best-effort passenger demand forecasting:

- history.py: historical demand loader (CSV or synthetic 30-day series)
- estimator.py: trend and season adjusted predictions, route analytics and network trends
- client.py: gateway access to the forecasting service with mock fallback
- app.py: standalone forecasting service
- router.py: gateway endpoints
"""

from .router import router
from .history import DemandSample, HistoricalDataLoader
from .estimator import ForecastEstimator
from .client import ForecastClient

__all__ = [
    "router",
    "DemandSample",
    "HistoricalDataLoader",
    "ForecastEstimator",
    "ForecastClient"
]
