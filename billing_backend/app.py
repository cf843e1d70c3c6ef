import argparse
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPIError

from .config import CONFIG_FILE, CORS_ALLOW_ORIGINS, HOST, LOG_LEVEL, PORT, SIMULATED_FAILURE_RATE, SIMULATED_LATENCY_SECONDS
from .config_store import ConfigRepository, JsonFileConfigRepository, config_from_payload, redact
from .errors import BillingError, ConfigValidationError
from .metrics import observe_failure, observe_snapshot, scrape_metrics
from .providers.base import ProviderSelector
from .providers.bigquery import BigQuerySnapshotProvider
from .providers.simulated import SimulatedSnapshotProvider
from .schemas import BillingResponse, SettingsPayload, SettingsView, TimeRange

logging.basicConfig(level=LOG_LEVEL, format="[billing-api] %(levelname)s %(name)s: %(message)s")
LOG = logging.getLogger(__name__)

app = FastAPI(title="Cloud Billing Dashboard API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_simulated = SimulatedSnapshotProvider(
    latency_seconds=SIMULATED_LATENCY_SECONDS,
    failure_rate=SIMULATED_FAILURE_RATE,
)


def get_config_repository() -> ConfigRepository:
    return JsonFileConfigRepository(CONFIG_FILE)


def get_provider_selector() -> ProviderSelector:
    return ProviderSelector(simulated=_simulated, warehouse_factory=BigQuerySnapshotProvider)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc):
    return JSONResponse(status_code=400, content={"message": "Request body is invalid."})


def _billing_failure(source: str, error: Exception, is_configured: bool) -> JSONResponse:
    observe_failure(source)
    message = str(error) or "Failed to query BigQuery"
    return JSONResponse(status_code=500, content={"message": message, "isConfigured": is_configured})


@app.get("/api/health")
def health(repository: ConfigRepository = Depends(get_config_repository)):
    return {"status": "ok", "isConfigured": repository.read() is not None}


@app.get("/api/billing", response_model=BillingResponse)
async def get_billing(
    range_: Optional[str] = Query(None, alias="range"),
    repository: ConfigRepository = Depends(get_config_repository),
    selector: ProviderSelector = Depends(get_provider_selector),
):
    time_range = TimeRange.parse(range_)
    config = repository.read()
    is_configured = config is not None
    provider = selector.select(config)
    try:
        snapshot = await provider.fetch_snapshot(time_range)
    except (BillingError, GoogleAPIError) as e:
        LOG.error(f"{provider.source} billing snapshot for {time_range.value} failed: {e}")
        return _billing_failure(provider.source, e, is_configured)
    except Exception as e:
        LOG.exception(f"unexpected error building {provider.source} snapshot for {time_range.value}")
        return _billing_failure(provider.source, e, is_configured)

    observe_snapshot(provider.source, time_range.value, snapshot.metrics.total_cost)
    LOG.info(f"served {provider.source} snapshot range={time_range.value} total={snapshot.metrics.total_cost}")
    return BillingResponse(source=provider.source, snapshot=snapshot, is_configured=is_configured)


@app.get("/api/settings", response_model=SettingsView, response_model_exclude_none=True)
def get_settings(repository: ConfigRepository = Depends(get_config_repository)):
    config = repository.read()
    if config is None:
        return SettingsView(is_configured=False)
    return redact(config)


@app.post("/api/settings")
def save_settings(payload: SettingsPayload, repository: ConfigRepository = Depends(get_config_repository)):
    try:
        config = config_from_payload(payload)
    except ConfigValidationError as e:
        LOG.info(f"rejected connection settings: {e}")
        return JSONResponse(status_code=400, content={"message": str(e)})
    repository.write(config)
    return {"ok": True}


@app.get("/metrics")
def metrics(repository: ConfigRepository = Depends(get_config_repository)):
    output, ctype = scrape_metrics(repository)
    return Response(content=output, media_type=ctype)


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Serve the billing dashboard API")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()
    uvicorn.run("billing_backend.app:app", host=args.host, port=args.port, reload=args.reload)
