"""Per-session dashboard state, kept in ``st.session_state`` between reruns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from billing_dashboard.config import DEFAULT_RANGE, RANGE_LABELS

STATE_KEY = "billing_dashboard_state"


@dataclass
class SettingsForm:
    project_id: str = ""
    dataset: str = ""
    table: str = ""
    service_account_json: str = ""


@dataclass
class DashboardState:
    range: str = DEFAULT_RANGE
    snapshot: dict[str, Any] | None = None
    source: str = "simulated"
    is_configured: bool = False
    loading: bool = False
    error: str | None = None
    settings_loaded: bool = False
    show_settings: bool = False
    settings_message: str | None = None
    form: SettingsForm = field(default_factory=SettingsForm)

    def select_range(self, value: str) -> bool:
        """Switch the time window; returns True when it actually changed."""
        if value not in RANGE_LABELS or value == self.range:
            return False
        self.range = value
        return True

    def start_loading(self) -> None:
        self.loading = True

    def apply_billing(self, data: dict[str, Any]) -> None:
        """Fold a ``GET /billing`` result in; failures keep the last good snapshot."""
        self.loading = False
        if "error" in data:
            self.error = data["error"] or "Failed to load billing data"
            return
        self.error = None
        self.snapshot = data.get("snapshot")
        self.source = data.get("source", "simulated")
        self.is_configured = bool(data.get("isConfigured"))

    def apply_settings(self, data: dict[str, Any]) -> None:
        self.settings_loaded = True
        if "error" in data or not data.get("isConfigured"):
            return
        self.is_configured = True
        self.form.project_id = data.get("projectId") or ""
        self.form.dataset = data.get("dataset") or ""
        self.form.table = data.get("table") or ""

    def apply_save(self, data: dict[str, Any]) -> bool:
        if "error" in data:
            self.settings_message = data["error"] or "Unable to save settings"
            return False
        self.is_configured = True
        self.show_settings = False
        self.settings_message = "Connection saved locally. Fetching BigQuery data now..."
        return True


def get_state(session_state: Any) -> DashboardState:
    if STATE_KEY not in session_state:
        session_state[STATE_KEY] = DashboardState()
    return session_state[STATE_KEY]
