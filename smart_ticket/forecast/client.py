import logging
from datetime import date, timedelta
from typing import Optional

import httpx

from smart_ticket.forecast.estimator import DEFAULT_WINDOW_DAYS, ForecastEstimator
from smart_ticket.forecast.schemas import ForecastTrends, Prediction, RouteAnalytics

logger = logging.getLogger(__name__)

UPSTREAM_UNAVAILABLE_NOTE = "Using mock data - forecast service unavailable"

class ForecastClient:
    """
    Gateway-side access to the forecasting service.

    With a base_url the remote service is called over HTTP with a short
    timeout; any transport, status or payload error is answered with a local
    mock response flagged as degraded. Without a base_url the estimator runs
    in-process.
    """

    def __init__(
        self,
        estimator: ForecastEstimator,
        base_url: Optional[str] = None,
        timeout: float = 5.0,
        http_client: Optional[httpx.Client] = None
    ):
        self.estimator = estimator
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._http_client = http_client

    @property
    def remote(self) -> bool:
        return self.base_url is not None

    def _get(self, path: str, params: dict) -> dict:
        params = {key: value for key, value in params.items() if value is not None}
        if self._http_client is not None:
            response = self._http_client.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        else:
            response = httpx.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def predict(self, route: str, target_date: date, hour: Optional[int] = None) -> Prediction:
        if not self.remote:
            return self.estimator.predict(route, target_date, hour)

        try:
            payload = self._get("/predict", {"route": route, "date": target_date.isoformat(), "hour": hour})
            return Prediction(**payload)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning("Forecast service error for route=%s: %s", route, e)
            return self.estimator.mock_prediction(route, target_date, hour, note=UPSTREAM_UNAVAILABLE_NOTE)

    def get_analytics(
        self,
        route_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> RouteAnalytics:
        if not self.remote:
            return self.estimator.get_analytics(route_id, start_date, end_date)

        try:
            payload = self._get(f"/routes/{route_id}/analytics", {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None
            })
            return RouteAnalytics(**payload)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning("Analytics service error for route=%s: %s", route_id, e)
            return self.estimator.mock_analytics(
                route_id,
                *self._window(start_date, end_date),
                note=UPSTREAM_UNAVAILABLE_NOTE
            )

    def get_trends(self, period: str = "7d") -> ForecastTrends:
        if not self.remote:
            return self.estimator.get_trends(period)

        try:
            return ForecastTrends(**self._get("/trends", {"period": period}))
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning("Trends service error: %s", e)
            return self.estimator.mock_trends(period, note=UPSTREAM_UNAVAILABLE_NOTE)

    @staticmethod
    def _window(start_date: Optional[date], end_date: Optional[date]):
        end = end_date or date.today()
        start = start_date or end - timedelta(days=DEFAULT_WINDOW_DAYS)
        return start, end
