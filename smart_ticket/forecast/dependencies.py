import random
from functools import lru_cache

from smart_ticket.config import settings
from smart_ticket.forecast.client import ForecastClient
from smart_ticket.forecast.estimator import ForecastEstimator
from smart_ticket.forecast.history import HistoricalDataLoader

@lru_cache()
def get_estimator() -> ForecastEstimator:
    """Process-wide estimator; history is loaded lazily on first use and kept until restart"""
    rng = random.Random(settings.FORECAST_RANDOM_SEED)
    loader = HistoricalDataLoader(settings.FORECAST_DATA_PATH, rng=rng)
    return ForecastEstimator(loader=loader, rng=rng)

@lru_cache()
def get_forecast_client() -> ForecastClient:
    return ForecastClient(
        estimator=get_estimator(),
        base_url=settings.FORECAST_SERVICE_URL,
        timeout=settings.FORECAST_TIMEOUT_SECONDS
    )
