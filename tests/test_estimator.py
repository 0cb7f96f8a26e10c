import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta

import pytest

from smart_ticket.forecast.estimator import (
    ForecastEstimator, calculate_trend, confidence_for_trend, peak_hour_ranges, seasonal_adjustment
)
from smart_ticket.forecast.history import DemandSample, HistoricalDataLoader, SYNTHETIC_ROUTES

ROUTE = "Harbour Loop"
WEDNESDAY = date(2030, 3, 13)

def weekly_history(bookings, target=WEDNESDAY, hour=9, capacity=60):
    """One sample per week before target, oldest first"""
    weeks = len(bookings)
    return [
        DemandSample(ROUTE, target - timedelta(days=7 * (weeks - index)), hour, count, capacity)
        for index, count in enumerate(bookings)
    ]

def test_prediction_is_reproducible_with_seeded_source():
    estimator = ForecastEstimator(samples=weekly_history([30] * 10), rng=random.Random(7))
    expected = int(round(30 + random.Random(7).uniform(-5, 5)))

    prediction = estimator.predict(ROUTE, WEDNESDAY, 9)

    assert prediction.predicted_count == expected
    assert prediction.capacity == 60
    assert prediction.confidence == 95
    assert prediction.datetime == "2030-03-13 09:00:00"
    assert prediction.degraded is False
    assert prediction.explanation[0] == "Weekday commuter demand expected"
    assert prediction.explanation[-1] == "Weather and events may affect actual ridership"

def test_rising_history_lowers_confidence_and_is_explained():
    estimator = ForecastEstimator(samples=weekly_history([10] * 3 + [30] * 7), rng=random.Random(1))

    prediction = estimator.predict(ROUTE, WEDNESDAY, 9)

    assert prediction.confidence == 60
    assert prediction.explanation[0] == "Increasing ridership trend detected"
    assert 39 <= prediction.predicted_count <= 49

def test_calculate_trend_compares_recent_week_with_older_samples():
    samples = weekly_history([10] * 3 + [30] * 7)

    assert calculate_trend(list(reversed(samples))) == 20
    assert calculate_trend(samples[:1]) == 0
    assert calculate_trend(samples[-7:]) == 0

@pytest.mark.parametrize("trend,expected", [(0, 95), (4, 92), (-10, 80), (30, 60)])
def test_confidence_is_clamped(trend, expected):
    assert confidence_for_trend(trend) == expected

def test_seasonal_rules_stack():
    december_saturday = date(2030, 12, 14)
    july_sunday = date(2030, 7, 14)
    november_monday = date(2030, 11, 11)
    assert december_saturday.weekday() == 5
    assert july_sunday.weekday() == 6
    assert november_monday.weekday() == 0

    assert seasonal_adjustment(december_saturday) == 0
    assert seasonal_adjustment(july_sunday) == -8
    assert seasonal_adjustment(november_monday) == 5
    assert seasonal_adjustment(WEDNESDAY) == 0

def test_peak_hour_ranges_merge_consecutive_hours():
    assert peak_hour_ranges([7, 8, 17]) == ["7:00-9:00", "17:00-18:00"]
    assert peak_hour_ranges([]) == []

def test_unknown_route_gets_degraded_mock():
    estimator = ForecastEstimator(samples=weekly_history([30] * 4), rng=random.Random(3))

    prediction = estimator.predict("Nowhere Express", WEDNESDAY)

    assert prediction.degraded is True
    assert prediction.note
    assert prediction.datetime.endswith("09:00:00")
    assert 50 <= prediction.capacity <= 99
    assert 70 <= prediction.confidence <= 90

def test_hour_without_history_gets_degraded_mock():
    estimator = ForecastEstimator(samples=weekly_history([30] * 4), rng=random.Random(3))

    prediction = estimator.predict(ROUTE, WEDNESDAY, 22)

    assert prediction.degraded is True
    assert prediction.datetime == "2030-03-13 22:00:00"

class FailingLoader:
    source = None

    def load(self):
        raise RuntimeError("history store unavailable")

def test_loader_failure_falls_back_to_mock():
    estimator = ForecastEstimator(loader=FailingLoader(), rng=random.Random(5))

    prediction = estimator.predict(ROUTE, WEDNESDAY, 9)

    assert prediction.degraded is True
    assert prediction.route == ROUTE

@pytest.mark.parametrize("seed", range(5))
def test_predictions_stay_within_bounds(seed):
    rng = random.Random(seed)
    loader = HistoricalDataLoader(None, rng=rng, today=date(2030, 6, 1))
    estimator = ForecastEstimator(loader=loader, rng=rng)

    for offset in range(0, 60, 3):
        for hour in (0, 7, 12, 18, 23):
            prediction = estimator.predict(SYNTHETIC_ROUTES[seed % 4], date(2030, 6, 1) + timedelta(days=offset), hour)
            assert prediction.predicted_count >= 0
            assert 0 <= prediction.utilization_pct <= 100
            assert 60 <= prediction.confidence <= 95
            assert prediction.explanation

@pytest.fixture
def analytics_estimator():
    monday = date(2030, 3, 11)
    tuesday = date(2030, 3, 12)
    samples = [
        DemandSample("R1", monday, 8, 44, 50),
        DemandSample("R1", monday, 9, 40, 50),
        DemandSample("R1", tuesday, 13, 10, 50),
        DemandSample("R1", date(2030, 4, 15), 8, 50, 50),
        DemandSample("R2", monday, 8, 50, 50),
    ]
    return ForecastEstimator(samples=samples, rng=random.Random(11))

def test_route_analytics_over_window(analytics_estimator):
    analytics = analytics_estimator.get_analytics("R1", date(2030, 3, 1), date(2030, 3, 31))

    assert analytics.degraded is False
    assert analytics.utilization.average == 63
    assert analytics.utilization.peak == 81
    assert analytics.utilization.low == 44
    assert analytics.recommendations == [
        "Peak utilization during: 8:00-10:00",
        "Monitor weather and events for demand fluctuations",
    ]

    monday = analytics.heatmap[0]
    assert monday.day == "monday"
    assert len(monday.hours) == 24
    assert monday.hours[8].utilization == 88
    assert monday.hours[8].bookings == 44
    assert analytics.heatmap[1].hours[8].bookings == 0

    weekly = analytics.trends.weekly
    assert [point.day for point in weekly] == list(range(7))
    assert weekly[1].bookings == 42
    assert weekly[2].bookings == 10
    assert len(analytics.trends.hourly) == 24

def test_analytics_window_defaults_to_thirty_days(analytics_estimator):
    analytics = analytics_estimator.get_analytics("R1", today=date(2030, 3, 20))

    assert analytics.period.start == date(2030, 2, 18)
    assert analytics.period.end == date(2030, 3, 20)
    assert analytics.degraded is False

def test_empty_window_returns_mock_analytics(analytics_estimator):
    analytics = analytics_estimator.get_analytics("R1", date(2031, 1, 1), date(2031, 1, 31))

    assert analytics.degraded is True
    assert analytics.utilization.average == 65
    assert len(analytics.heatmap) == 7
    assert all(len(day.hours) == 24 for day in analytics.heatmap)

def test_network_trends():
    start = date(2030, 3, 1)
    samples = []
    for offset in range(14):
        day = start + timedelta(days=offset)
        samples.append(DemandSample("R1", day, 8, 10 if offset < 7 else 20, 20))
        samples.append(DemandSample("R1", day, 14, 2, 20))
    estimator = ForecastEstimator(samples=samples)

    trends = estimator.get_trends("14d")

    assert trends.period == "14d"
    assert trends.overall_trend == "increasing"
    assert trends.peak_hours == ["8:00-9:00"]
    assert trends.low_hours == ["14:00-15:00"]
    assert trends.degraded is False

def test_trends_without_history_are_degraded():
    trends = ForecastEstimator(samples=[]).get_trends()

    assert trends.degraded is True
    assert trends.overall_trend == "stable"

@pytest.mark.parametrize("hour,clamped", [(24, 23), (-1, 0)])
def test_out_of_range_hour_gets_degraded_mock(hour, clamped):
    estimator = ForecastEstimator(samples=weekly_history([30] * 4), rng=random.Random(3))

    prediction = estimator.predict(ROUTE, WEDNESDAY, hour)

    assert prediction.degraded is True
    assert prediction.note == "Hour must be between 0 and 23"
    assert prediction.datetime == f"2030-03-13 {clamped:02d}:00:00"

class SlowLoader:
    source = "fixture"

    def __init__(self, samples):
        self.samples = tuple(samples)
        self.load_calls = 0

    def load(self):
        self.load_calls += 1
        time.sleep(0.05)
        return self.samples

def test_concurrent_cold_predictions_load_history_once():
    loader = SlowLoader(weekly_history([30] * 10))
    estimator = ForecastEstimator(loader=loader, rng=random.Random(2))
    start = threading.Barrier(4)

    def cold_predict(_):
        start.wait()
        return estimator.predict(ROUTE, WEDNESDAY, 9)

    with ThreadPoolExecutor(max_workers=4) as pool:
        predictions = list(pool.map(cold_predict, range(4)))

    assert loader.load_calls == 1
    assert all(prediction.degraded is False for prediction in predictions)
