"""Synchronous API client for the billing dashboard backend."""

from typing import Any

import httpx

from billing_dashboard.config import API_BASE_URL, API_TIMEOUT


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return f"HTTP {resp.status_code}: {resp.text}"


class BillingAPIClient:
    """HTTP client for the billing REST API.

    Uses sync httpx since Streamlit runs synchronously.
    All methods return dicts; errors are returned as ``{"error": msg}``,
    preferring the ``message`` the server put in the response body.
    """

    def __init__(self, base_url: str = API_BASE_URL, timeout: int = API_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict:
        try:
            resp = httpx.get(
                f"{self.base_url}{path}",
                params={k: v for k, v in (params or {}).items() if v is not None},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            return {"error": _error_message(exc.response)}
        except httpx.RequestError as exc:
            return {"error": f"Connection error: {exc}"}

    def _post(self, path: str, json: dict[str, Any] | None = None) -> dict:
        try:
            resp = httpx.post(
                f"{self.base_url}{path}",
                json=json or {},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            return {"error": _error_message(exc.response)}
        except httpx.RequestError as exc:
            return {"error": f"Connection error: {exc}"}

    def get_billing(self, range: str) -> dict:
        return self._get("/billing", {"range": range})

    def get_settings(self) -> dict:
        return self._get("/settings")

    def save_settings(self, project_id: str, dataset: str, table: str, service_account_json: str) -> dict:
        return self._post(
            "/settings",
            {
                "projectId": project_id,
                "dataset": dataset,
                "table": table,
                "serviceAccountJson": service_account_json,
            },
        )
