"""Dashboard configuration: API connection, refresh cadence, labels and colors."""

import os

# --- API Connection ---
API_BASE_URL = os.getenv("BILLING_API_URL", "http://localhost:8000/api")
API_TIMEOUT = int(os.getenv("BILLING_DASHBOARD_TIMEOUT", "10"))

# --- Display defaults ---
AUTO_REFRESH_INTERVAL = int(os.getenv("BILLING_REFRESH_SECONDS", "30"))  # seconds
DEFAULT_RANGE = "7d"

RANGE_LABELS: dict[str, str] = {
    "24h": "Last 24 hours",
    "7d": "Last 7 days",
    "30d": "Last 30 days",
}

SOURCE_LABELS: dict[str, str] = {
    "simulated": "Simulated fallback",
    "warehouse": "Live BigQuery",
}

# --- Colors ---
TREND_COLOR = "#2563eb"
DELTA_COLORS: dict[str, str] = {
    "increase": "#dc2626",
    "decrease": "#059669",
}
