"""Runtime configuration for the NatureUP backend.

Everything is read from environment variables once, at import time.
"""

from __future__ import annotations

import os
from typing import Optional


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


# ============================================================================
# Language model
# ============================================================================

# When false the deterministic rule-based providers answer every turn.
USE_LLM: bool = _flag("USE_LLM")

BEDROCK_MODEL_ID: str = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-5-sonnet-20240620-v1:0")
AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
BEDROCK_TEMPERATURE: float = float(os.getenv("BEDROCK_TEMPERATURE", "0.2"))
BEDROCK_MAX_TOKENS: int = int(os.getenv("BEDROCK_MAX_TOKENS", "1024"))


# ============================================================================
# Logging
# ============================================================================

# Directory for per-session JSONL logs; defaults to backend/logs.
LOGS_DIR: Optional[str] = os.getenv("NATUREUP_LOGS_DIR")


# ============================================================================
# Collaborators
# ============================================================================

OPEN_METEO_URL: str = os.getenv("OPEN_METEO_URL", "https://api.open-meteo.com/v1/forecast")
OVERPASS_URL: str = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "20"))

PLACE_SEARCH_RADIUS_MILES: float = float(os.getenv("PLACE_SEARCH_RADIUS_MILES", "5"))
PLACE_SEARCH_LIMIT: int = int(os.getenv("PLACE_SEARCH_LIMIT", "10"))

# Preloaded location + nearby spots older than this are ignored.
LOCATION_CACHE_MAX_AGE_SECONDS: int = int(os.getenv("LOCATION_CACHE_MAX_AGE_SECONDS", "600"))


# ============================================================================
# Excursion planning
# ============================================================================

DEFAULT_EXCURSION_MINUTES: int = int(os.getenv("DEFAULT_EXCURSION_MINUTES", "30"))
WALKING_SPEED_KMH: float = float(os.getenv("WALKING_SPEED_KMH", "4.5"))
