from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Snowflake
SNOWFLAKE_ACCOUNT = os.getenv("SNOWFLAKE_ACCOUNT", "")
SNOWFLAKE_WAREHOUSE = os.getenv("SNOWFLAKE_WAREHOUSE", "")
SNOWFLAKE_USER = os.getenv("SNOWFLAKE_USER", "")
SNOWFLAKE_PRIVATE_KEY_PATH = os.getenv("SNOWFLAKE_PRIVATE_KEY_PATH", "./snowflake_private_key.pem")
SNOWFLAKE_DATABASE = os.getenv("SNOWFLAKE_DATABASE", "ARGO")
SNOWFLAKE_SCHEMA = os.getenv("SNOWFLAKE_SCHEMA", "ARGO_FULL")
SNOWFLAKE_DEFAULT_ROLE = os.getenv("SNOWFLAKE_DEFAULT_ROLE") or None

# Tables
PROFILES_TABLE = os.getenv("ARGO_PROFILES_TABLE", "ARGO.ARGO_FULL.PROFILES")
MEASUREMENTS_TABLE = os.getenv("ARGO_MEASUREMENTS_TABLE", "ARGO.ARGO_FULL.MEASUREMENTS")

# Warehouse budget, enforced by the executor
WAREHOUSE_TIMEOUT_SECONDS = float(os.getenv("WAREHOUSE_TIMEOUT_SECONDS", "30"))
WAREHOUSE_MAX_ROWS = int(os.getenv("WAREHOUSE_MAX_ROWS", "10000"))
WAREHOUSE_POLL_INTERVAL_SECONDS = float(os.getenv("WAREHOUSE_POLL_INTERVAL_SECONDS", "0.25"))

# Page sizes per endpoint: (default, max)
FLOATS_PAGE_LIMITS = (20, 100)
PROFILES_PAGE_LIMITS = (20, 100)
MEASUREMENTS_PAGE_LIMITS = (100, 500)
NEAREST_LIMITS = (10, 100)
NEAREST_DEFAULT_DISTANCE_KM = float(os.getenv("NEAREST_DEFAULT_DISTANCE_KM", "500"))

REGIONS_FILE = Path(os.getenv("REGIONS_FILE", str(Path(__file__).with_name("regions.yaml"))))

CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
