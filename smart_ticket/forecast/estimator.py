import logging
import random
import threading
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from smart_ticket.forecast.history import DemandSample, HistoricalDataLoader
from smart_ticket.forecast.schemas import (
    AnalyticsPeriod, ForecastTrends, HeatmapDay, HourCell, Prediction, RouteAnalytics,
    RouteTrends, UtilizationSummary, WeekdayPoint
)

logger = logging.getLogger(__name__)

DEFAULT_HOUR = 9
DEFAULT_CAPACITY = 50
DEFAULT_WINDOW_DAYS = 30
RECENT_WINDOW = 7
NOISE_AMPLITUDE = 5.0
MIN_CONFIDENCE = 60
MAX_CONFIDENCE = 95
HIGH_UTILIZATION_RATIO = 0.8
PEAK_HOUR_UTILIZATION = 70
LOW_HOUR_UTILIZATION = 40

# Heatmap rows, Monday first to match date.weekday()
HEATMAP_DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

EXTERNAL_FACTORS_CAVEAT = "Weather and events may affect actual ridership"
MOCK_EXPLANATION = [
    "Based on typical patterns for similar routes",
    "Limited historical data available for this route and hour",
    EXTERNAL_FACTORS_CAVEAT,
]
MOCK_RECOMMENDATIONS = [
    "Consider adding more vehicles during peak hours (7-9 AM, 5-7 PM)",
    "Route shows consistent high utilization on weekdays",
    "Weekend ridership is 40% lower than weekdays",
]

def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0

def _clamp(value, low, high):
    return max(low, min(high, value))

def _is_weekend(day: date) -> bool:
    return day.weekday() >= 5

def _sunday_first_index(day: date) -> int:
    return (day.weekday() + 1) % 7

def seasonal_adjustment(target: date) -> int:
    """
    Additive seasonal shift in passengers. Rules are independent signals and
    stack: holiday months +5, summer months -3, weekends -5.
    """
    adjustment = 0
    if target.month in (11, 12):
        adjustment += 5
    if 5 <= target.month <= 9:
        adjustment -= 3
    if _is_weekend(target):
        adjustment -= 5
    return adjustment

def calculate_trend(samples: Sequence[DemandSample]) -> float:
    """Mean bookings of the latest samples minus mean of the older ones"""
    if len(samples) < 2:
        return 0.0

    ordered = sorted(samples, key=lambda s: (s.date, s.hour))
    recent = ordered[-RECENT_WINDOW:]
    older = ordered[:-RECENT_WINDOW]
    if not recent or not older:
        return 0.0

    return _mean(s.bookings for s in recent) - _mean(s.bookings for s in older)

def confidence_for_trend(trend: float) -> float:
    return float(_clamp(round(100 - abs(trend) * 2, 1), MIN_CONFIDENCE, MAX_CONFIDENCE))

def utilization_percent(bookings: float, capacity: float) -> int:
    if capacity <= 0:
        return 0
    return int(_clamp(round(bookings / capacity * 100), 0, 100))

def peak_hour_ranges(hours: Sequence[int]) -> List[str]:
    """Merge sorted hours into "start:00-end:00" ranges, e.g. [7, 8] -> ["7:00-9:00"]"""
    ranges = []
    if not hours:
        return ranges

    start = end = hours[0]
    for hour in hours[1:]:
        if hour == end + 1:
            end = hour
        else:
            ranges.append(f"{start}:00-{end + 1}:00")
            start = end = hour
    ranges.append(f"{start}:00-{end + 1}:00")
    return ranges

class ForecastEstimator:
    """
    Demand predictions and route analytics over a cached historical series.

    The random source is injected so a seeded estimator gives reproducible
    output. predict() and get_analytics() never raise: any failure, missing data or
    out-of-range hour yields a shape-valid mock response flagged as degraded.
    """

    def __init__(
        self,
        loader: Optional[HistoricalDataLoader] = None,
        samples: Optional[Sequence[DemandSample]] = None,
        rng: Optional[random.Random] = None
    ):
        self.rng = rng or random.Random()
        self.loader = loader
        self._samples: Optional[Tuple[DemandSample, ...]] = tuple(samples) if samples is not None else None
        self._samples_lock = threading.Lock()

    @property
    def samples(self) -> Tuple[DemandSample, ...]:
        if self._samples is None:
            with self._samples_lock:
                if self._samples is None:
                    self._samples = self.loader.load() if self.loader else ()
        return self._samples

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------

    def predict(self, route: str, target_date: date, hour: Optional[int] = None) -> Prediction:
        target_hour = DEFAULT_HOUR if hour is None else hour
        if not 0 <= target_hour <= 23:
            logger.warning("Hour %s out of range for route=%s, answering with mock data", target_hour, route)
            return self.mock_prediction(
                route, target_date, _clamp(target_hour, 0, 23), note="Hour must be between 0 and 23"
            )

        try:
            return self._predict(route, target_date, target_hour)
        except Exception:
            logger.exception("Prediction failed for route=%s date=%s hour=%s", route, target_date, target_hour)
            return self.mock_prediction(route, target_date, target_hour)

    def _predict(self, route: str, target_date: date, hour: int) -> Prediction:
        route_samples = [s for s in self.samples if s.route == route]
        if not route_samples:
            return self.mock_prediction(route, target_date, hour, note="No historical data for this route")

        weekday = target_date.weekday()
        slice_samples = [s for s in route_samples if s.date.weekday() == weekday and s.hour == hour]
        if not slice_samples:
            return self.mock_prediction(route, target_date, hour, note="No historical data for this day and hour")

        mean_bookings = _mean(s.bookings for s in slice_samples)
        mean_capacity = _mean(s.capacity for s in slice_samples)
        trend = calculate_trend(slice_samples)
        noise = self.rng.uniform(-NOISE_AMPLITUDE, NOISE_AMPLITUDE)

        predicted = max(0, int(round(mean_bookings + trend + seasonal_adjustment(target_date) + noise)))

        return Prediction(
            route=route,
            datetime=self._format_datetime(target_date, hour),
            predicted_count=predicted,
            capacity=int(mean_capacity),
            utilization_pct=utilization_percent(predicted, mean_capacity),
            confidence=confidence_for_trend(trend),
            explanation=self._explain(predicted, mean_capacity, trend, target_date)
        )

    def mock_prediction(
        self,
        route: str,
        target_date: date,
        hour: Optional[int] = None,
        note: str = "Using mock data - insufficient historical data"
    ) -> Prediction:
        """Synthetic prediction used whenever real history cannot answer"""
        baseline = 20 + self.rng.random() * 30
        capacity = self.rng.randint(50, 99)

        return Prediction(
            route=route,
            datetime=self._format_datetime(target_date, DEFAULT_HOUR if hour is None else hour),
            predicted_count=int(baseline),
            capacity=capacity,
            utilization_pct=utilization_percent(baseline, capacity),
            confidence=round(70 + self.rng.random() * 20, 1),
            explanation=list(MOCK_EXPLANATION),
            degraded=True,
            note=note
        )

    @staticmethod
    def _format_datetime(target_date: date, hour: int) -> str:
        return datetime(target_date.year, target_date.month, target_date.day, hour).strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def _explain(predicted: int, capacity: float, trend: float, target_date: date) -> List[str]:
        explanations = []

        if trend > 5:
            explanations.append("Increasing ridership trend detected")
        elif trend < -5:
            explanations.append("Decreasing ridership trend detected")

        if _is_weekend(target_date):
            explanations.append("Weekend typically shows lower ridership")
        else:
            explanations.append("Weekday commuter demand expected")

        if target_date.month in (11, 12):
            explanations.append("Holiday season boost applied")
        elif 5 <= target_date.month <= 9:
            explanations.append("Summer season reduction applied")

        if capacity > 0 and predicted / capacity > HIGH_UTILIZATION_RATIO:
            explanations.append("High utilization expected - consider additional capacity")

        explanations.append(EXTERNAL_FACTORS_CAVEAT)
        return explanations

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def get_analytics(
        self,
        route_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> RouteAnalytics:
        end = end_date or today or date.today()
        start = start_date or end - timedelta(days=DEFAULT_WINDOW_DAYS)
        try:
            return self._analytics(route_id, start, end)
        except Exception:
            logger.exception("Analytics failed for route=%s", route_id)
            return self.mock_analytics(route_id, start, end)

    def _analytics(self, route_id: str, start: date, end: date) -> RouteAnalytics:
        window = [s for s in self.samples if s.route == route_id and start <= s.date <= end]
        if not window:
            return self.mock_analytics(route_id, start, end, note="No historical data in the requested window")

        total_bookings = sum(s.bookings for s in window)
        mean_capacity = _mean(s.capacity for s in window)
        average = total_bookings / (len(window) * mean_capacity) * 100 if mean_capacity else 0.0
        hourly = self._hourly_trend(window)

        return RouteAnalytics(
            route_id=route_id,
            period=AnalyticsPeriod(start=start, end=end),
            utilization=UtilizationSummary(
                average=round(average),
                # Peak and low are heuristic multiples of the average, not measured
                peak=min(100, round(average * 1.3)),
                low=round(average * 0.7)
            ),
            heatmap=self._heatmap(window),
            trends=RouteTrends(weekly=self._weekly_trend(window), hourly=hourly),
            recommendations=self._recommendations(average, hourly)
        )

    @staticmethod
    def _cell(samples: Sequence[DemandSample]) -> Tuple[int, int]:
        """(utilization %, mean bookings) for a bucket; empty buckets read as 0 of the default capacity"""
        mean_bookings = _mean(s.bookings for s in samples)
        mean_capacity = _mean(s.capacity for s in samples) if samples else DEFAULT_CAPACITY
        return utilization_percent(mean_bookings, mean_capacity), round(mean_bookings)

    def _heatmap(self, samples: Sequence[DemandSample]) -> List[HeatmapDay]:
        heatmap = []
        for weekday, day_name in enumerate(HEATMAP_DAYS):
            day_samples = [s for s in samples if s.date.weekday() == weekday]
            cells = []
            for hour in range(24):
                utilization, bookings = self._cell([s for s in day_samples if s.hour == hour])
                cells.append(HourCell(hour=hour, utilization=utilization, bookings=bookings))
            heatmap.append(HeatmapDay(day=day_name, hours=cells))
        return heatmap

    def _weekly_trend(self, samples: Sequence[DemandSample]) -> List[WeekdayPoint]:
        points = []
        for day in range(7):
            utilization, bookings = self._cell([s for s in samples if _sunday_first_index(s.date) == day])
            points.append(WeekdayPoint(day=day, utilization=utilization, bookings=bookings))
        return points

    def _hourly_trend(self, samples: Sequence[DemandSample]) -> List[HourCell]:
        points = []
        for hour in range(24):
            utilization, bookings = self._cell([s for s in samples if s.hour == hour])
            points.append(HourCell(hour=hour, utilization=utilization, bookings=bookings))
        return points

    @staticmethod
    def _recommendations(average: float, hourly: Sequence[HourCell]) -> List[str]:
        recommendations = []

        if average > 80:
            recommendations.append("High utilization detected - consider increasing capacity")
        if average < 30:
            recommendations.append("Low utilization - consider optimizing schedule")

        peak_hours = [point.hour for point in hourly if point.utilization > PEAK_HOUR_UTILIZATION]
        if peak_hours:
            recommendations.append(f"Peak utilization during: {', '.join(peak_hour_ranges(peak_hours))}")

        recommendations.append("Monitor weather and events for demand fluctuations")
        return recommendations

    def mock_analytics(
        self,
        route_id: str,
        start: date,
        end: date,
        note: str = "Using mock data - insufficient historical data"
    ) -> RouteAnalytics:
        """Random but shape-valid analytics used whenever real history cannot answer"""
        return RouteAnalytics(
            route_id=route_id,
            period=AnalyticsPeriod(start=start, end=end),
            utilization=UtilizationSummary(average=65, peak=85, low=35),
            heatmap=[
                HeatmapDay(day=day_name, hours=[
                    HourCell(hour=hour, utilization=self.rng.randint(0, 99), bookings=self.rng.randint(10, 59))
                    for hour in range(24)
                ])
                for day_name in HEATMAP_DAYS
            ],
            trends=RouteTrends(
                weekly=[
                    WeekdayPoint(day=day, utilization=self.rng.randint(20, 79), bookings=self.rng.randint(20, 119))
                    for day in range(7)
                ],
                hourly=[
                    HourCell(hour=hour, utilization=self.rng.randint(10, 89), bookings=self.rng.randint(5, 34))
                    for hour in range(24)
                ]
            ),
            recommendations=list(MOCK_RECOMMENDATIONS),
            degraded=True,
            note=note
        )

    # ------------------------------------------------------------------
    # Network trends
    # ------------------------------------------------------------------

    def get_trends(self, period: str = "7d") -> ForecastTrends:
        try:
            return self._trends(period)
        except Exception:
            logger.exception("Trend calculation failed for period=%s", period)
            return self.mock_trends(period)

    def _trends(self, period: str) -> ForecastTrends:
        samples = self.samples
        if not samples:
            return self.mock_trends(period, note="No historical data available")

        hourly = [point for point in self._hourly_trend(samples) if point.bookings or point.utilization]
        peak = [p.hour for p in hourly if p.utilization > PEAK_HOUR_UTILIZATION]
        low = [p.hour for p in hourly if p.utilization < LOW_HOUR_UTILIZATION]

        by_date = {}
        for sample in samples:
            by_date.setdefault(sample.date, []).append(sample.bookings)
        daily_totals = [sum(by_date[day]) for day in sorted(by_date)]
        direction = self._direction(daily_totals)

        recommendations = []
        if peak:
            recommendations.append("Increase capacity during morning and evening rush hours")
        if low:
            recommendations.append("Consider reducing frequency during low-demand hours")
        recommendations.append("Implement real-time capacity monitoring")

        return ForecastTrends(
            period=period,
            overall_trend=direction,
            peak_hours=peak_hour_ranges(peak),
            low_hours=peak_hour_ranges(low),
            recommendations=recommendations
        )

    @staticmethod
    def _direction(daily_totals: Sequence[int]) -> str:
        recent = daily_totals[-RECENT_WINDOW:]
        older = daily_totals[:-RECENT_WINDOW]
        if not recent or not older:
            return "stable"

        change = _mean(recent) - _mean(older)
        baseline = _mean(older) or 1
        if change / baseline > 0.05:
            return "increasing"
        if change / baseline < -0.05:
            return "decreasing"
        return "stable"

    def mock_trends(self, period: str, note: str = "Using mock data - insufficient historical data") -> ForecastTrends:
        return ForecastTrends(
            period=period,
            overall_trend="stable",
            peak_hours=["7:00-10:00", "17:00-20:00"],
            low_hours=["10:00-16:00"],
            recommendations=[
                "Increase capacity during morning and evening rush hours",
                "Implement real-time capacity monitoring"
            ],
            degraded=True,
            note=note
        )
