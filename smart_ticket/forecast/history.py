import logging
import os
import random
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["route", "date", "hour", "bookings", "capacity"]

SYNTHETIC_ROUTES = (
    "Central Station to Airport Express",
    "City Center to IT Hub",
    "University to Mall District",
    "Residential to Business District",
)

@dataclass(frozen=True)
class DemandSample:
    """One observed (route, date, hour) => (bookings, capacity) data point"""
    route: str
    date: date
    hour: int
    bookings: int
    capacity: int

class HistoricalDataLoader:
    """
    Loads the historical demand series once and keeps it as an immutable tuple.

    Reads a CSV of route,date,hour,bookings,capacity rows; when the file is
    missing or unreadable a 30-day synthetic dataset is generated instead.
    """

    def __init__(
        self,
        csv_path: Optional[str] = None,
        rng: Optional[random.Random] = None,
        days: int = 30,
        today: Optional[date] = None
    ):
        self.csv_path = csv_path
        self.rng = rng or random.Random()
        self.days = days
        self.today = today
        self.source: Optional[str] = None
        self._samples: Optional[Tuple[DemandSample, ...]] = None
        self._lock = threading.Lock()

    def load(self) -> Tuple[DemandSample, ...]:
        """Return the cached series, reading or synthesizing it on first call only"""
        if self._samples is not None:
            return self._samples

        with self._lock:
            if self._samples is None:
                self._samples = self._read_or_synthesize()
        return self._samples

    def _read_or_synthesize(self) -> Tuple[DemandSample, ...]:
        samples = None
        if self.csv_path and os.path.exists(self.csv_path):
            try:
                samples = self.read_csv(self.csv_path)
                self.source = "csv"
                logger.info("Loaded %d historical records from %s", len(samples), self.csv_path)
            except (OSError, ValueError, KeyError, pd.errors.ParserError) as e:
                logger.error("Error loading historical data from %s: %s", self.csv_path, e)

        if samples is None:
            samples = self.synthesize()
            self.source = "synthetic"
            logger.info("Using %d synthetic historical records", len(samples))

        return samples

    @staticmethod
    def read_csv(path: str) -> Tuple[DemandSample, ...]:
        """Parse the CSV, dropping rows with missing or non-numeric fields"""
        df = pd.read_csv(path, dtype={"route": str})
        missing = [column for column in CSV_COLUMNS if column not in df.columns]
        if missing:
            raise KeyError(f"Missing columns: {', '.join(missing)}")

        df = df[CSV_COLUMNS].copy()
        df["route"] = df["route"].str.strip()
        df["date"] = pd.to_datetime(df["date"], errors="coerce").dt.date
        for column in ("hour", "bookings", "capacity"):
            df[column] = pd.to_numeric(df[column], errors="coerce")
        df = df.dropna()
        df = df[(df["hour"] >= 0) & (df["hour"] <= 23) & (df["bookings"] >= 0)]

        return tuple(
            DemandSample(
                route=row.route,
                date=row.date,
                hour=int(row.hour),
                bookings=int(row.bookings),
                capacity=int(row.capacity)
            )
            for row in df.itertuples(index=False)
        )

    def synthesize(self) -> Tuple[DemandSample, ...]:
        """Generate days x routes x hours 6-21 with a commuter-shaped daily curve"""
        today = self.today or date.today()
        start_date = today - timedelta(days=self.days)
        samples = []

        for offset in range(self.days):
            day = start_date + timedelta(days=offset)

            for route in SYNTHETIC_ROUTES:
                for hour in range(6, 22):
                    if 7 <= hour <= 9 or 17 <= hour <= 19:
                        base_bookings = 40 + self.rng.random() * 20
                    elif 10 <= hour <= 16:
                        base_bookings = 15 + self.rng.random() * 15
                    else:
                        base_bookings = 5 + self.rng.random() * 10

                    if day.weekday() >= 5:
                        base_bookings *= 0.6

                    capacity = self.rng.randint(50, 99)
                    bookings = int(base_bookings + (self.rng.random() - 0.5) * 10)

                    samples.append(DemandSample(
                        route=route,
                        date=day,
                        hour=hour,
                        bookings=max(0, bookings),
                        capacity=capacity
                    ))

        return tuple(samples)
