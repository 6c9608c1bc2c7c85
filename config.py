"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
Copy ``.env.example`` to ``.env`` and adjust values for your environment.
"""

import os

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Context detection
# ---------------------------------------------------------------------------

# How often (seconds) the user context is resampled.
CONTEXT_REFRESH_INTERVAL_SECONDS: int = int(
    os.getenv("CONTEXT_REFRESH_INTERVAL_SECONDS", "3600")
)

# Viewport breakpoints in CSS pixels.
MOBILE_MAX_WIDTH: int = int(os.getenv("MOBILE_MAX_WIDTH", "768"))
TABLET_MAX_WIDTH: int = int(os.getenv("TABLET_MAX_WIDTH", "1024"))

# Device signals reported by the client.  Leave unset when unknown; the
# corresponding context field is then omitted rather than guessed.
_viewport = os.getenv("VIEWPORT_WIDTH")
VIEWPORT_WIDTH: int | None = int(_viewport) if _viewport else None
NETWORK_EFFECTIVE_TYPE: str | None = os.getenv("NETWORK_EFFECTIVE_TYPE") or None
_battery = os.getenv("BATTERY_LEVEL")
BATTERY_LEVEL: float | None = float(_battery) if _battery else None

# ---------------------------------------------------------------------------
# Search and paging
# ---------------------------------------------------------------------------

DEBOUNCE_SECONDS: float = float(os.getenv("DEBOUNCE_SECONDS", "0.3"))
PAGE_SIZE: int = int(os.getenv("PAGE_SIZE", "12"))

# ---------------------------------------------------------------------------
# Data files
# ---------------------------------------------------------------------------

# Optional preset file; the built-in presets are used when unset.
PRESETS_PATH: str | None = os.getenv("PRESETS_PATH") or None

# Optional anime catalog (JSON list of records) for the in-memory source.
CATALOG_JSON_PATH: str | None = os.getenv("CATALOG_JSON_PATH") or None

# ---------------------------------------------------------------------------
# Remote catalog service (we connect to it as a gRPC client)
# ---------------------------------------------------------------------------

# When set, results come from this gRPC address instead of a local catalog.
CATALOG_GRPC_ADDRESS: str | None = os.getenv("CATALOG_GRPC_ADDRESS") or None
CATALOG_RPC_TIMEOUT_SECONDS: float = float(os.getenv("CATALOG_RPC_TIMEOUT_SECONDS", "5"))

# ---------------------------------------------------------------------------
# Mock catalog server
# ---------------------------------------------------------------------------

MOCK_GRPC_HOST: str = os.getenv("MOCK_GRPC_HOST", "0.0.0.0")
MOCK_GRPC_PORT: int = int(os.getenv("MOCK_GRPC_PORT", "50052"))
