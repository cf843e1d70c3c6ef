import asyncio
import math
import random
import datetime as dt
from typing import Callable, List, Optional

from ..errors import UpstreamError
from ..schemas import (
    BillingMetrics,
    BillingSnapshot,
    CostDriverRow,
    ServiceCost,
    TimeRange,
    TrendPoint,
)

SERVICES = ["Compute Engine", "Cloud Storage", "BigQuery", "Cloud Run", "GKE"]
PROJECTS = ["prod-core", "ml-platform", "payments", "analytics", "sandbox"]
DRIVER_ROWS = 8

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

# points, step, base cost
RANGE_SHAPE = {
    TimeRange.LAST_24H: (24, HOUR_MS, 42.0),
    TimeRange.LAST_7D: (28, DAY_MS, 250.0),
    TimeRange.LAST_30D: (30, DAY_MS, 930.0),
}


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SimulatedSnapshotProvider:
    """Plausible-looking billing data for dashboards with no warehouse connection.

    Sleeps for ``latency_seconds`` to feel like a network round trip and fails
    with probability ``failure_rate`` so clients see upstream errors too.
    """

    source = "simulated"

    def __init__(
        self,
        latency_seconds: float = 0.6,
        failure_rate: float = 0.06,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ):
        self.latency_seconds = latency_seconds
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()
        self.clock = clock or _utcnow

    async def fetch_snapshot(self, range: TimeRange) -> BillingSnapshot:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        if self.rng.random() < self.failure_rate:
            raise UpstreamError("Simulated BigQuery timeout")
        return self.generate(range)

    def generate(self, range: TimeRange) -> BillingSnapshot:
        now = self.clock()
        points, step, base = RANGE_SHAPE[range]
        trend = self._trend(now, points, step, base)
        total = round(sum(p.cost for p in trend), 2)

        return BillingSnapshot(
            range=range,
            updated_at=now.isoformat(),
            metrics=BillingMetrics(
                total_cost=total,
                projected_month_end=round(total * 1.09, 2),
                avg_hourly_burn=round(total / points * (1 if range == TimeRange.LAST_24H else 24), 2),
                budget_usage_pct=round(62 + self.rng.random() * 18, 1),
            ),
            trend=trend,
            by_service=self._by_service(total),
            table_rows=self._cost_drivers(),
        )

    def _trend(self, now: dt.datetime, points: int, step: int, base: float) -> List[TrendPoint]:
        now_ms = int(now.timestamp() * 1000)
        trend = []
        for i in range(points):
            variance = math.sin(i / 3) * (base * 0.08) + (self.rng.random() - 0.5) * (base * 0.04)
            trend.append(TrendPoint(timestamp=now_ms - (points - i - 1) * step, cost=round(base + variance, 2)))
        return trend

    def _by_service(self, total: float) -> List[ServiceCost]:
        share = total / len(SERVICES)
        out = []
        for i, name in enumerate(SERVICES):
            weight = 1 - i * 0.14 + self.rng.random() * 0.1
            out.append(ServiceCost(name=name, cost=round(share * weight, 2)))
        return out

    def _cost_drivers(self) -> List[CostDriverRow]:
        rows = [
            CostDriverRow(
                project=PROJECTS[i % len(PROJECTS)],
                service=SERVICES[(i + 1) % len(SERVICES)],
                cost=round(45 + self.rng.random() * 650, 2),
                delta_pct=round((self.rng.random() - 0.45) * 18, 2),
            )
            for i in range(DRIVER_ROWS)
        ]
        rows.sort(key=lambda r: r.cost, reverse=True)
        return rows
