"""Application settings"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).parent.parent

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{BASE_DIR / 'data' / 'relief.db'}"
)

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Search radius (meters)
DISASTER_DEFAULT_RADIUS_M = float(os.getenv("DISASTER_DEFAULT_RADIUS_M", "50000"))
DISASTER_MAX_RADIUS_M = float(os.getenv("DISASTER_MAX_RADIUS_M", "500000"))
RESOURCE_DEFAULT_RADIUS_M = float(os.getenv("RESOURCE_DEFAULT_RADIUS_M", "10000"))
RESOURCE_MAX_RADIUS_M = float(os.getenv("RESOURCE_MAX_RADIUS_M", "100000"))

# Rectangle prefilter before haversine on the scan path (off by default)
SCAN_BBOX_PREFILTER = os.getenv("SCAN_BBOX_PREFILTER", "false").lower() in ("1", "true", "yes")

# Benchmark: live API base URL, e.g. http://localhost:8000/api/v1
BENCHMARK_API_URL = os.getenv("BENCHMARK_API_URL") or None
BENCHMARK_HTTP_TIMEOUT = float(os.getenv("BENCHMARK_HTTP_TIMEOUT", "10"))
