import asyncio
import json
import logging
import datetime as dt
from typing import Any, Callable, Dict, Iterable, List, Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import bigquery
from google.oauth2 import service_account

from ..config_store import validate_identifier
from ..errors import ConfigValidationError, UpstreamError
from ..schemas import (
    BillingMetrics,
    BillingSnapshot,
    CostDriverRow,
    ServiceCost,
    StoredConnectionConfig,
    TimeRange,
    TrendPoint,
)

LOG = logging.getLogger(__name__)

# trend bucket, window hours, comparison window hours (measured back from now)
RANGE_WINDOWS = {
    TimeRange.LAST_24H: ("HOUR", 24, 48),
    TimeRange.LAST_7D: ("DAY", 7 * 24, 14 * 24),
    TimeRange.LAST_30D: ("DAY", 30 * 24, 60 * 24),
}

SERVICE_LIMIT = 8
DRIVER_LIMIT = 12
UNKNOWN_SERVICE = "Unknown"
UNKNOWN_PROJECT = "unknown-project"


def create_client(config: StoredConnectionConfig) -> bigquery.Client:
    try:
        info = json.loads(config.service_account_json)
        if not isinstance(info, dict):
            raise TypeError(f"expected a JSON object, got {type(info).__name__}")
        credentials = service_account.Credentials.from_service_account_info(info)
    except (ValueError, TypeError, AttributeError) as e:
        raise ConfigValidationError(f"Service account JSON is invalid: {e}") from e
    return bigquery.Client(project=config.project_id, credentials=credentials)


def assert_valid_config(config: StoredConnectionConfig) -> None:
    if not validate_identifier(config.dataset) or not validate_identifier(config.table):
        raise ConfigValidationError("Dataset and table can only contain letters, numbers, underscore, and hyphen.")


def table_path(config: StoredConnectionConfig) -> str:
    return f"`{config.project_id}.{config.dataset}.{config.table}`"


def trend_query(path: str, range: TimeRange) -> str:
    bucket = RANGE_WINDOWS[range][0]
    return f"""
    SELECT
      TIMESTAMP_TRUNC(usage_start_time, {bucket}) AS ts,
      ROUND(SUM(cost), 2) AS cost
    FROM {path}
    WHERE usage_start_time >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @window_hours HOUR)
    GROUP BY ts
    ORDER BY ts
    """


def service_query(path: str) -> str:
    return f"""
    SELECT
      service.description AS service,
      ROUND(SUM(cost), 2) AS cost
    FROM {path}
    WHERE usage_start_time >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @window_hours HOUR)
    GROUP BY service
    ORDER BY cost DESC
    LIMIT {SERVICE_LIMIT}
    """


def cost_driver_query(path: str) -> str:
    return f"""
    WITH recent AS (
      SELECT
        project.name AS project,
        service.description AS service,
        SUM(cost) AS cost
      FROM {path}
      WHERE usage_start_time >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @window_hours HOUR)
      GROUP BY project, service
    ),
    previous AS (
      SELECT
        project.name AS project,
        service.description AS service,
        SUM(cost) AS cost
      FROM {path}
      WHERE usage_start_time BETWEEN TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @previous_hours HOUR)
        AND TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @window_hours HOUR)
      GROUP BY project, service
    )
    SELECT
      r.project,
      r.service,
      ROUND(r.cost, 2) AS cost,
      ROUND(COALESCE(p.cost, 0), 2) AS previous_cost
    FROM recent r
    LEFT JOIN previous p
      ON r.project = p.project AND r.service = p.service
    ORDER BY cost DESC
    LIMIT {DRIVER_LIMIT}
    """


def _job_config(**hours: int) -> bigquery.QueryJobConfig:
    return bigquery.QueryJobConfig(
        query_parameters=[bigquery.ScalarQueryParameter(name, "INT64", value) for name, value in hours.items()]
    )


def _money(value: Any) -> float:
    return round(float(value or 0.0), 2)


def _epoch_ms(value: Any) -> int:
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        return int(value.timestamp() * 1000)
    return int(value)


def delta_pct(current: float, previous: float) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 0.0


def shape_trend(rows: Iterable[Dict[str, Any]]) -> List[TrendPoint]:
    return [TrendPoint(timestamp=_epoch_ms(r.get("ts")), cost=_money(r.get("cost"))) for r in rows]


def shape_services(rows: Iterable[Dict[str, Any]]) -> List[ServiceCost]:
    return [ServiceCost(name=r.get("service") or UNKNOWN_SERVICE, cost=_money(r.get("cost"))) for r in rows]


def shape_cost_drivers(rows: Iterable[Dict[str, Any]]) -> List[CostDriverRow]:
    out = []
    for r in rows:
        current = _money(r.get("cost"))
        previous = _money(r.get("previous_cost"))
        out.append(CostDriverRow(
            project=r.get("project") or UNKNOWN_PROJECT,
            service=r.get("service") or UNKNOWN_SERVICE,
            cost=current,
            delta_pct=delta_pct(current, previous),
        ))
    return out


def build_snapshot(range: TimeRange, updated_at: dt.datetime, trend_rows, service_rows, driver_rows) -> BillingSnapshot:
    trend = shape_trend(trend_rows)
    total = round(sum(p.cost for p in trend), 2)
    # Average over buckets, whatever their width; budget tracking is not wired to real data.
    avg_burn = round(total / len(trend), 2) if trend else 0.0
    return BillingSnapshot(
        range=range,
        updated_at=updated_at.isoformat(),
        metrics=BillingMetrics(
            total_cost=total,
            projected_month_end=round(total * 1.1, 2),
            avg_hourly_burn=avg_burn,
            budget_usage_pct=0.0,
        ),
        trend=trend,
        by_service=shape_services(service_rows),
        table_rows=shape_cost_drivers(driver_rows),
    )


class BigQuerySnapshotProvider:
    """Billing snapshot computed from a Cloud Billing export table in BigQuery."""

    source = "warehouse"

    def __init__(
        self,
        config: StoredConnectionConfig,
        client_factory: Callable[[StoredConnectionConfig], Any] = create_client,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ):
        self.config = config
        self.client_factory = client_factory
        self.clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))

    async def fetch_snapshot(self, range: TimeRange) -> BillingSnapshot:
        return await asyncio.to_thread(self.fetch, range)

    def fetch(self, range: TimeRange) -> BillingSnapshot:
        assert_valid_config(self.config)
        client = self.client_factory(self.config)
        path = table_path(self.config)
        _, window_hours, previous_hours = RANGE_WINDOWS[range]
        window = _job_config(window_hours=window_hours)
        comparison = _job_config(window_hours=window_hours, previous_hours=previous_hours)
        try:
            trend_rows = list(client.query(trend_query(path, range), job_config=window).result())
            service_rows = list(client.query(service_query(path), job_config=window).result())
            driver_rows = list(client.query(cost_driver_query(path), job_config=comparison).result())
        except (GoogleAPIError, GoogleAuthError) as e:
            LOG.error(f"BigQuery billing query failed for {path}: {e}")
            raise UpstreamError(f"BigQuery query failed: {e}") from e
        return build_snapshot(range, self.clock(), trend_rows, service_rows, driver_rows)
