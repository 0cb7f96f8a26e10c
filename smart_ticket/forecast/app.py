"""
Standalone forecasting service.

Run with ``uvicorn smart_ticket.forecast.app:app --port 5001`` and point the
gateway's FORECAST_SERVICE_URL at it.
"""
from fastapi import Depends, FastAPI, Query
from typing import Optional
from datetime import date
import logging

from smart_ticket.config import settings
from smart_ticket.logging_config import setup_logging
from smart_ticket.forecast.dependencies import get_estimator
from smart_ticket.forecast.estimator import ForecastEstimator
from smart_ticket.forecast.schemas import ForecastTrends, Prediction, RouteAnalytics

logger = logging.getLogger(__name__)

def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} Forecasting Service",
        version="1.0.0",
        description="Demand prediction and route analytics"
    )

    @app.get("/predict", response_model=Prediction)
    def predict(
        route: str = Query(..., min_length=1),
        travel_date: date = Query(..., alias="date"),
        hour: Optional[int] = Query(None, ge=0, le=23),
        estimator: ForecastEstimator = Depends(get_estimator)
    ):
        logger.info("Forecast request: route=%s date=%s hour=%s", route, travel_date, hour)
        return estimator.predict(route, travel_date, hour)

    @app.get("/routes/{route_id}/analytics", response_model=RouteAnalytics)
    def analytics(
        route_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        estimator: ForecastEstimator = Depends(get_estimator)
    ):
        logger.info("Analytics request: route=%s start=%s end=%s", route_id, start_date, end_date)
        return estimator.get_analytics(route_id, start_date, end_date)

    @app.get("/trends", response_model=ForecastTrends)
    def trends(period: str = "7d", estimator: ForecastEstimator = Depends(get_estimator)):
        return estimator.get_trends(period)

    @app.get("/health")
    def health_check(estimator: ForecastEstimator = Depends(get_estimator)):
        return {
            "status": "healthy",
            "records": len(estimator.samples),
            "source": estimator.loader.source if estimator.loader else "fixture"
        }

    return app

app = create_app()
