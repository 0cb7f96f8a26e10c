from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date

class Prediction(BaseModel):
    """Demand prediction for one route at one hour; never persisted"""
    route: str
    datetime: str
    predicted_count: int = Field(..., ge=0)
    capacity: int
    utilization_pct: int = Field(..., ge=0, le=100)
    confidence: float = Field(..., ge=60, le=95)
    explanation: List[str]
    degraded: bool = False
    note: Optional[str] = None

class AnalyticsPeriod(BaseModel):
    start: date
    end: date

class UtilizationSummary(BaseModel):
    average: int
    peak: int
    low: int

class HourCell(BaseModel):
    hour: int
    utilization: int
    bookings: int

class HeatmapDay(BaseModel):
    day: str
    hours: List[HourCell]

class WeekdayPoint(BaseModel):
    day: int  # 0 = Sunday
    utilization: int
    bookings: int

class RouteTrends(BaseModel):
    weekly: List[WeekdayPoint]
    hourly: List[HourCell]

class RouteAnalytics(BaseModel):
    """Aggregate demand analytics for a route over a date window"""
    route_id: str
    period: AnalyticsPeriod
    utilization: UtilizationSummary
    heatmap: List[HeatmapDay]
    trends: RouteTrends
    recommendations: List[str]
    degraded: bool = False
    note: Optional[str] = None

class ForecastTrends(BaseModel):
    """Network-wide demand shape across all routes"""
    period: str
    overall_trend: str
    peak_hours: List[str]
    low_hours: List[str]
    recommendations: List[str]
    degraded: bool = False
    note: Optional[str] = None
