from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

SnapshotSource = Literal["simulated", "warehouse"]


class TimeRange(str, Enum):
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TimeRange":
        """Anything other than a known window falls back to the last 7 days."""
        try:
            return cls(value)
        except ValueError:
            return cls.LAST_7D


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrendPoint(CamelModel):
    timestamp: int  # epoch milliseconds
    cost: float


class ServiceCost(CamelModel):
    name: str
    cost: float


class BillingMetrics(CamelModel):
    total_cost: float
    projected_month_end: float
    avg_hourly_burn: float
    budget_usage_pct: float


class CostDriverRow(CamelModel):
    project: str
    service: str
    cost: float
    delta_pct: float


class BillingSnapshot(CamelModel):
    range: TimeRange
    updated_at: str
    metrics: BillingMetrics
    trend: List[TrendPoint]
    by_service: List[ServiceCost]
    table_rows: List[CostDriverRow]


class BillingResponse(CamelModel):
    source: SnapshotSource
    snapshot: BillingSnapshot
    is_configured: bool


class StoredConnectionConfig(CamelModel):
    project_id: str
    dataset: str
    table: str
    service_account_json: str


class SettingsPayload(CamelModel):
    project_id: Optional[str] = None
    dataset: Optional[str] = None
    table: Optional[str] = None
    service_account_json: Optional[str] = None


class SettingsView(CamelModel):
    project_id: Optional[str] = None
    dataset: Optional[str] = None
    table: Optional[str] = None
    is_configured: bool
