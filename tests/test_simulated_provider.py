"""Tests for the simulated billing snapshot generator."""

import random
from unittest.mock import AsyncMock, patch

import pytest

from billing_backend.errors import UpstreamError
from billing_backend.providers.simulated import PROJECTS, SERVICES, SimulatedSnapshotProvider
from billing_backend.schemas import TimeRange

from conftest import FIXED_NOW, FIXED_NOW_MS

HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS


def _is_cents(value: float) -> bool:
    return round(value, 2) == value


@pytest.fixture
def provider() -> SimulatedSnapshotProvider:
    return SimulatedSnapshotProvider(latency_seconds=0, failure_rate=0, rng=random.Random(42), clock=lambda: FIXED_NOW)


class TestTrendShape:
    @pytest.mark.parametrize(
        ("time_range", "points", "step"),
        [
            (TimeRange.LAST_24H, 24, HOUR_MS),
            (TimeRange.LAST_7D, 28, DAY_MS),
            (TimeRange.LAST_30D, 30, DAY_MS),
        ],
    )
    def test_point_count_and_spacing(self, provider, time_range, points, step) -> None:
        trend = provider.generate(time_range).trend

        assert len(trend) == points
        assert trend[-1].timestamp == FIXED_NOW_MS
        assert all(b.timestamp - a.timestamp == step for a, b in zip(trend, trend[1:]))

    def test_costs_hover_around_range_base(self, provider) -> None:
        trend = provider.generate(TimeRange.LAST_30D).trend

        # +/- 8% oscillation plus +/- 2% jitter around 930
        assert all(930 * 0.89 <= p.cost <= 930 * 1.11 for p in trend)


class TestSnapshotValues:
    def test_total_is_sum_of_trend(self, provider) -> None:
        snapshot = provider.generate(TimeRange.LAST_7D)

        assert snapshot.metrics.total_cost == round(sum(p.cost for p in snapshot.trend), 2)

    def test_monetary_values_rounded_to_cents(self, provider) -> None:
        snapshot = provider.generate(TimeRange.LAST_24H)
        metrics = snapshot.metrics

        money = [metrics.total_cost, metrics.projected_month_end, metrics.avg_hourly_burn]
        money += [p.cost for p in snapshot.trend]
        money += [s.cost for s in snapshot.by_service]
        money += [r.cost for r in snapshot.table_rows] + [r.delta_pct for r in snapshot.table_rows]
        assert all(_is_cents(v) for v in money)

    def test_derived_metrics(self, provider) -> None:
        daily = provider.generate(TimeRange.LAST_30D).metrics
        hourly = provider.generate(TimeRange.LAST_24H).metrics

        assert daily.projected_month_end == round(daily.total_cost * 1.09, 2)
        assert daily.avg_hourly_burn == round(daily.total_cost / 30 * 24, 2)
        assert hourly.avg_hourly_burn == round(hourly.total_cost / 24, 2)
        assert 62 <= daily.budget_usage_pct <= 80

    def test_service_breakdown_covers_fixed_services(self, provider) -> None:
        by_service = provider.generate(TimeRange.LAST_7D).by_service

        assert [s.name for s in by_service] == SERVICES
        assert all(s.cost > 0 for s in by_service)

    def test_cost_drivers_sorted_by_cost(self, provider) -> None:
        rows = provider.generate(TimeRange.LAST_7D).table_rows

        assert len(rows) == 8
        assert [r.cost for r in rows] == sorted((r.cost for r in rows), reverse=True)
        assert {r.project for r in rows} <= set(PROJECTS)
        assert all(45 <= r.cost <= 695 for r in rows)
        assert all(-8.1 <= r.delta_pct <= 9.9 for r in rows)

    def test_snapshot_carries_range_and_timestamp(self, provider) -> None:
        snapshot = provider.generate(TimeRange.LAST_24H)

        assert snapshot.range == TimeRange.LAST_24H
        assert snapshot.updated_at == FIXED_NOW.isoformat()


class TestFetchSnapshot:
    async def test_waits_for_artificial_latency(self) -> None:
        provider = SimulatedSnapshotProvider(latency_seconds=0.6, failure_rate=0, rng=random.Random(1))
        with patch("billing_backend.providers.simulated.asyncio.sleep", new=AsyncMock()) as sleep:
            await provider.fetch_snapshot(TimeRange.LAST_7D)

        sleep.assert_awaited_once_with(0.6)

    async def test_injected_failure_raises_upstream_error(self) -> None:
        provider = SimulatedSnapshotProvider(latency_seconds=0, failure_rate=1.0)

        with pytest.raises(UpstreamError, match="Simulated BigQuery timeout"):
            await provider.fetch_snapshot(TimeRange.LAST_7D)

    async def test_zero_failure_rate_never_fails(self, provider) -> None:
        for _ in range(50):
            snapshot = await provider.fetch_snapshot(TimeRange.LAST_24H)
            assert len(snapshot.trend) == 24
