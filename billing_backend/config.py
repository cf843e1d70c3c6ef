import os

DATA_DIR = os.environ.get("BILLING_DATA_DIR", os.path.join(os.getcwd(), "data"))
CONFIG_FILE = os.environ.get("BILLING_CONFIG_FILE", os.path.join(DATA_DIR, "bigquery-config.json"))

SIMULATED_LATENCY_SECONDS = float(os.environ.get("SIMULATED_LATENCY_SECONDS", "0.6"))
SIMULATED_FAILURE_RATE = float(os.environ.get("SIMULATED_FAILURE_RATE", "0.06"))

CORS_ALLOW_ORIGINS = [o.strip() for o in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))
