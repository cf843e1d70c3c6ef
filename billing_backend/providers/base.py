import logging
from typing import Callable, Optional, Protocol

from ..schemas import BillingSnapshot, SnapshotSource, StoredConnectionConfig, TimeRange

LOG = logging.getLogger(__name__)


class SnapshotProvider(Protocol):
    source: SnapshotSource

    async def fetch_snapshot(self, range: TimeRange) -> BillingSnapshot: ...


class ProviderSelector:
    """Picks the snapshot source: the warehouse once a connection is stored, the simulator otherwise."""

    def __init__(
        self,
        simulated: SnapshotProvider,
        warehouse_factory: Callable[[StoredConnectionConfig], SnapshotProvider],
    ):
        self.simulated = simulated
        self.warehouse_factory = warehouse_factory

    def select(self, config: Optional[StoredConnectionConfig]) -> SnapshotProvider:
        if config is None:
            LOG.debug("no connection config stored, using simulated billing data")
            return self.simulated
        LOG.debug(f"using warehouse billing data from {config.project_id}.{config.dataset}.{config.table}")
        return self.warehouse_factory(config)
