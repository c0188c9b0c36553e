"""Adapter factory and public source interfaces."""

from datetime import date
from typing import Any

import httpx

from agri_eo_api.config import Settings
from agri_eo_api.sources.appeears import AppeearsPointAdapter
from agri_eo_api.sources.base import (
    AdapterError,
    AdapterTimeout,
    Empty,
    Failure,
    FailureReason,
    Location,
    SourceAdapter,
    SourceQuery,
    SourceResult,
    Success,
)
from agri_eo_api.sources.cmr import GranuleProbeAdapter, ModisGranuleAdapter, SmapArchiveAdapter, SmapGranuleAdapter
from agri_eo_api.sources.ornl import OrnlSubsetAdapter
from agri_eo_api.sources.registry import SourceConfig, SourceRegistryDocument

ADAPTER_KINDS: dict[str, type] = {
    adapter.kind: adapter
    for adapter in (
        SmapArchiveAdapter,
        SmapGranuleAdapter,
        ModisGranuleAdapter,
        GranuleProbeAdapter,
        AppeearsPointAdapter,
        OrnlSubsetAdapter,
    )
}

DATE_OPTIONS = ("window_start", "window_end")


def _upstream_url(settings: Settings, upstream: str) -> str:
    return {
        "cmr": settings.cmr_url,
        "appeears": settings.appeears_url,
        "ornl": settings.ornl_url,
    }[upstream]


def _normalized_options(options: dict[str, Any]) -> dict[str, Any]:
    normalized = dict(options)
    for name in DATE_OPTIONS:
        value = normalized.get(name)
        if isinstance(value, str):
            normalized[name] = date.fromisoformat(value)
    if "collection_ids" in normalized:
        normalized["collection_ids"] = tuple(str(value) for value in normalized["collection_ids"])
    return normalized


def build_adapter(
    config: SourceConfig,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SourceAdapter:
    """Instantiate the adapter implementation for one configured source."""

    adapter_cls = ADAPTER_KINDS.get(config.kind.strip().lower())
    if adapter_cls is None:
        raise RuntimeError(f"Unsupported source kind configured for '{config.id}': {config.kind}")

    return adapter_cls(
        source_id=config.id,
        base_url=_upstream_url(settings, config.upstream),
        transport=transport,
        **_normalized_options(config.options),
    )


def build_chains(
    registry: SourceRegistryDocument,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, list[SourceAdapter]]:
    return {
        name: [build_adapter(config, settings, transport=transport) for config in chain]
        for name, chain in registry.chains.items()
    }


__all__ = [
    "AdapterError",
    "AdapterTimeout",
    "AppeearsPointAdapter",
    "Empty",
    "Failure",
    "FailureReason",
    "GranuleProbeAdapter",
    "Location",
    "ModisGranuleAdapter",
    "OrnlSubsetAdapter",
    "SmapArchiveAdapter",
    "SmapGranuleAdapter",
    "SourceAdapter",
    "SourceQuery",
    "SourceResult",
    "Success",
    "build_adapter",
    "build_chains",
]
