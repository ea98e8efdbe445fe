"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

EXTERNAL_PROVIDERS = {"google_places", "serpapi"}
MIN_DEBOUNCE_MS = 300
MAX_DEBOUNCE_MS = 500


class ConfigError(RuntimeError):
    """Raised when configuration is present but unusable."""


@dataclass(frozen=True)
class Settings:
    venue_api_url: str = "https://api.bndy.co.uk"
    google_api_key: str = ""
    serpapi_api_key: str = ""
    external_provider: str = "google_places"
    external_timeout: float = 5.0
    search_debounce_ms: int = 400
    match_radius_m: float = 50.0
    name_similarity_threshold: int = 85
    location_key_precision: int = 6
    cluster_max_radius: int = 40
    cluster_disable_at_zoom: int = 12
    strict_invariants: bool = False
    port: int = 8080


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    venue_api_url = os.getenv("VENUE_API_URL", Settings.venue_api_url).rstrip("/")
    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    serpapi_api_key = os.getenv("SERPAPI_API_KEY", "")
    external_provider = os.getenv("EXTERNAL_PROVIDER", "google_places").strip().lower()
    external_timeout = float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "5"))
    debounce_raw = int(os.getenv("SEARCH_DEBOUNCE_MS", "400"))
    search_debounce_ms = min(max(debounce_raw, MIN_DEBOUNCE_MS), MAX_DEBOUNCE_MS)
    match_radius_m = float(os.getenv("MATCH_RADIUS_METERS", "50"))
    name_similarity_threshold = int(os.getenv("NAME_SIMILARITY_THRESHOLD", "85"))
    location_key_precision = int(os.getenv("LOCATION_KEY_PRECISION", "6"))
    cluster_max_radius = int(os.getenv("CLUSTER_MAX_RADIUS", "40"))
    cluster_disable_at_zoom = int(os.getenv("CLUSTER_DISABLE_AT_ZOOM", "12"))
    strict_invariants = os.getenv("STRICT_INVARIANTS", "false").lower() in {"1", "true", "yes"}
    port = int(os.getenv("PORT", "8080"))

    if external_provider not in EXTERNAL_PROVIDERS:
        raise ConfigError(
            f"EXTERNAL_PROVIDER must be one of {sorted(EXTERNAL_PROVIDERS)}, got {external_provider!r}."
        )
    if debounce_raw != search_debounce_ms:
        logger.warning("SEARCH_DEBOUNCE_MS=%s clamped to %s.", debounce_raw, search_debounce_ms)
    if external_provider == "google_places" and not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; external place search will be skipped.")
    if external_provider == "serpapi" and not serpapi_api_key:
        logger.warning("SERPAPI_API_KEY is not configured; external place search will be skipped.")

    return Settings(
        venue_api_url=venue_api_url,
        google_api_key=google_api_key,
        serpapi_api_key=serpapi_api_key,
        external_provider=external_provider,
        external_timeout=external_timeout,
        search_debounce_ms=search_debounce_ms,
        match_radius_m=match_radius_m,
        name_similarity_threshold=name_similarity_threshold,
        location_key_precision=location_key_precision,
        cluster_max_radius=cluster_max_radius,
        cluster_disable_at_zoom=cluster_disable_at_zoom,
        strict_invariants=strict_invariants,
        port=port,
    )
