from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date
import logging

from smart_ticket.forecast.client import ForecastClient
from smart_ticket.forecast.dependencies import get_forecast_client
from smart_ticket.forecast.schemas import ForecastTrends, Prediction, RouteAnalytics

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/predict", response_model=Prediction)
def predict_demand(
    route: str = Query(..., min_length=1, description="Route name or ID"),
    travel_date: date = Query(..., alias="date", description="Travel date"),
    hour: Optional[int] = Query(None, ge=0, le=23, description="Hour of day, defaults to 9"),
    client: ForecastClient = Depends(get_forecast_client)
):
    """Predict passenger demand for a route at a given hour"""
    logger.info("Forecast prediction requested: route=%s date=%s hour=%s", route, travel_date, hour)
    return client.predict(route, travel_date, hour)

@router.get("/routes/{route_id}/analytics", response_model=RouteAnalytics)
def get_route_analytics(
    route_id: str,
    start_date: Optional[date] = Query(None, description="Window start, defaults to 30 days ago"),
    end_date: Optional[date] = Query(None, description="Window end, defaults to today"),
    client: ForecastClient = Depends(get_forecast_client)
):
    """Get utilization heatmap, trends and recommendations for a route"""
    logger.info("Route analytics requested: route=%s start=%s end=%s", route_id, start_date, end_date)
    return client.get_analytics(route_id, start_date, end_date)

@router.get("/trends", response_model=ForecastTrends)
def get_forecast_trends(
    period: str = Query("7d", description="Reporting period label"),
    client: ForecastClient = Depends(get_forecast_client)
):
    """Get network-wide peak and low demand hours"""
    return client.get_trends(period)
