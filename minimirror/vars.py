import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "minimirror")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = os.environ.get("PORT", "") or "3000"
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

TARGET_DOMAIN = os.environ.get("TARGET_DOMAIN", "").rstrip("/")
TARGET_ENDPOINT = os.environ.get("TARGET_ENDPOINT", "").rstrip("/")
# Additional origins whose references are routed through /_EXTERNAL_
SECONDARY_DOMAINS = [
    d.strip() for d in os.environ.get("SECONDARY_DOMAINS", "").split(";") if d.strip()
]

PROXY_TIMEOUT = float(os.getenv("PROXY_TIMEOUT", "30"))
MAX_RETRY = 3

EXTERNAL_PATH = "/_EXTERNAL_"
EXTERNAL_URL_PARAM = "EXTERNAL_URL"
LEGACY_EXTERNAL_URL_PARAM = "url"

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
METRICS_ENABLED = os.getenv("METRICS_ENABLED", "true").lower() == "true"
