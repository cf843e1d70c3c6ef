from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest, CONTENT_TYPE_LATEST

from .config_store import ConfigRepository

registry = CollectorRegistry()
snapshot_requests = Counter("billing_snapshot_requests", "Billing snapshot requests by data source", ["source"], registry=registry)
snapshot_failures = Counter("billing_snapshot_failures", "Failed billing snapshot requests by data source", ["source"], registry=registry)
snapshot_total_cost = Gauge("billing_snapshot_total_cost", "Total cost of the last snapshot served", ["source", "range"], registry=registry)
connection_configured = Gauge("billing_connection_configured", "1 when a warehouse connection is stored", registry=registry)


def observe_snapshot(source: str, time_range: str, total_cost: float):
    snapshot_requests.labels(source=source).inc()
    snapshot_total_cost.labels(source=source, range=time_range).set(total_cost)


def observe_failure(source: str):
    snapshot_requests.labels(source=source).inc()
    snapshot_failures.labels(source=source).inc()


def scrape_metrics(repository: ConfigRepository):
    connection_configured.set(1 if repository.read() is not None else 0)
    return generate_latest(registry), CONTENT_TYPE_LATEST
