"""Runtime settings loaded from environment variables (optionally via .env)."""

import os
from dataclasses import dataclass, field

ENV_PREFIX = "AGRI_EO_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CACHE_CATEGORIES = ("soil_moisture", "vegetation_index", "imagery", "field_grid")
DEFAULT_CACHE_TTL_SECONDS = 300.0
DEFAULT_CATEGORY_TTLS = {
    # MODIS vegetation indices are 16-day composites
    "vegetation_index": 3600.0,
}

DEFAULT_CMR_URL = "https://cmr.earthdata.nasa.gov/search"
DEFAULT_APPEEARS_URL = "https://appeears.earthdatacloud.nasa.gov/api/v1"
DEFAULT_ORNL_URL = "https://modis.ornl.gov/rst/api/v1"


def _env(name: str, default: str = "") -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default).strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float, *, allow_zero: bool = False) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value < 0 or (value == 0 and not allow_zero):
        return default
    return value


def _cors_origins() -> list[str]:
    raw = _env("CORS_ORIGINS", "*")
    if not raw:
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _log_level() -> str:
    level = _env("LOG_LEVEL", "INFO").upper()
    return level if level in LOG_LEVELS else "INFO"


def _cache_ttls() -> dict[str, float]:
    base = _env_float("CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS)
    ttls: dict[str, float] = {}
    for category in CACHE_CATEGORIES:
        default = DEFAULT_CATEGORY_TTLS.get(category, base)
        ttls[category] = _env_float(f"CACHE_TTL_{category.upper()}", default)
    return ttls


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3001
    default_token: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    default_cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    cache_ttls: dict[str, float] = field(default_factory=dict)
    cache_max_entries: int | None = None
    request_deadline_seconds: float | None = None
    sources_config: str | None = None
    cmr_url: str = DEFAULT_CMR_URL
    appeears_url: str = DEFAULT_APPEEARS_URL
    ornl_url: str = DEFAULT_ORNL_URL
    log_level: str = "INFO"
    random_seed: int | None = None

    @property
    def auth_mode(self) -> str:
        return "token" if self.default_token else "none"


def load_settings() -> Settings:
    """Build settings from the current process environment."""

    port = _env_int("PORT", 3001)
    if port <= 0:
        port = 3001

    max_entries = _env_int("CACHE_MAX_ENTRIES", 0)
    deadline = _env_float("REQUEST_DEADLINE_SECONDS", 0.0, allow_zero=True)

    raw_seed = _env("RANDOM_SEED")
    try:
        seed = int(raw_seed) if raw_seed else None
    except ValueError:
        seed = None

    return Settings(
        host=_env("HOST", "0.0.0.0") or "0.0.0.0",
        port=port,
        default_token=_env("EARTHDATA_TOKEN") or None,
        cors_origins=_cors_origins(),
        default_cache_ttl_seconds=_env_float("CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
        cache_ttls=_cache_ttls(),
        cache_max_entries=max_entries if max_entries > 0 else None,
        request_deadline_seconds=deadline or None,
        sources_config=_env("SOURCES_CONFIG") or None,
        cmr_url=(_env("CMR_URL") or DEFAULT_CMR_URL).rstrip("/"),
        appeears_url=(_env("APPEEARS_URL") or DEFAULT_APPEEARS_URL).rstrip("/"),
        ornl_url=(_env("ORNL_URL") or DEFAULT_ORNL_URL).rstrip("/"),
        log_level=_log_level(),
        random_seed=seed,
    )
