"""NASA CMR granule-search adapters (SMAP and MODIS archives)."""

import logging
import re
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

import httpx

from agri_eo_api.sources.base import AdapterError, Empty, SourceQuery, Success
from agri_eo_api.sources.http import HttpSourceAdapter

logger = logging.getLogger(__name__)

DATA_LINK_REL = "http://esipfed.org/ns/fedsearch/1.1/data#"

SMAP_ARCHIVE_COLLECTIONS = (
    "C2776463943-NSIDC_ECS",  # SPL3SMP_E daily 9 km
    "C3383993430-NSIDC_ECS",  # SPL4SMGP 3-hourly 9 km
    "C2776463773-NSIDC_ECS",  # SPL2SMP_E half-orbit 9 km
)
SMAP_L3_COLLECTION = "C2003773407-NSIDC_ECS"
MODIS_VI_COLLECTION = "C1000000240-LPDAAC_ECS"


def temporal_range(start: date, end: date) -> str:
    return f"{start.isoformat()}T00:00:00Z,{end.isoformat()}T23:59:59Z"


def bounding_box(lat: float, lon: float, half_deg: float) -> str:
    return f"{lon - half_deg},{lat - half_deg},{lon + half_deg},{lat + half_deg}"


def granule_entries(payload: Any) -> list[dict[str, Any]]:
    """Return the ``feed.entry`` list of a CMR granules.json document."""

    if not isinstance(payload, dict):
        raise AdapterError("CMR response is not a JSON object")
    feed = payload.get("feed")
    if not isinstance(feed, dict):
        return []
    entries = feed.get("entry") or []
    if not isinstance(entries, list):
        raise AdapterError("CMR feed.entry is not a list")
    return [entry for entry in entries if isinstance(entry, dict)]


def scrape_number(text: str, label: str) -> float | None:
    """Find ``<label>_<number>`` (or ``<label> <number>``) in free text."""

    match = re.search(rf"{re.escape(label)}[_\s]*(\d+\.?\d*)", text, re.IGNORECASE)
    if not match:
        return None
    return float(match.group(1))


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _entry_text(entry: dict[str, Any]) -> str:
    return f"{entry.get('title') or ''} {entry.get('summary') or ''}"


class CmrGranuleAdapter(HttpSourceAdapter):
    """Search CMR for granules around a point, trying each collection id in turn."""

    kind = "cmr_granules"
    quality = "operational"
    label = "NASA CMR granule"

    def __init__(
        self,
        *,
        source_id: str,
        base_url: str,
        collection_ids: Sequence[str],
        timeout_seconds: float = 15.0,
        bbox_half_deg: float = 0.5,
        page_size: int = 5,
        lookback_days: int = 0,
        window_start: date | None = None,
        window_end: date | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(source_id=source_id, base_url=base_url, timeout_seconds=timeout_seconds, transport=transport)
        if not collection_ids:
            raise ValueError(f"{source_id}: at least one collection id is required")
        self.collection_ids = tuple(collection_ids)
        self.bbox_half_deg = bbox_half_deg
        self.page_size = page_size
        self.lookback_days = lookback_days
        self.window_start = window_start
        self.window_end = window_end

    def search_window(self, query: SourceQuery) -> tuple[date, date]:
        if self.window_start is not None and self.window_end is not None:
            return (self.window_start, self.window_end)
        end = query.search_date()
        return (end - timedelta(days=self.lookback_days), end)

    def search_params(self, query: SourceQuery, collection_id: str) -> dict[str, Any]:
        start, end = self.search_window(query)
        return {
            "collection_concept_id": collection_id,
            "temporal": temporal_range(start, end),
            "bounding_box": bounding_box(query.location.lat, query.location.lon, self.bbox_half_deg),
            "page_size": self.page_size,
            "sort_key": "-start_date",
        }

    def build_payload(self, collection_id: str, entries: list[dict[str, Any]]) -> dict[str, Any]:
        entry = entries[0]
        return {
            "collection_id": collection_id,
            "granule_id": _optional_str(entry.get("id")),
            "granule_title": _optional_str(entry.get("title")),
            "time_start": _optional_str(entry.get("time_start")),
        }

    def source_label(self, collection_id: str) -> str:
        return f"{self.label} (Collection: {collection_id})"

    async def _lookup(self, query: SourceQuery) -> Success | Empty:
        url = f"{self.base_url}/granules.json"
        last_error: AdapterError | None = None

        for collection_id in self.collection_ids:
            logger.info("%s: trying collection %s", self.source_id, collection_id)
            try:
                payload = await self._request("GET", url, query, params=self.search_params(query, collection_id))
                entries = granule_entries(payload)
            except AdapterError as exc:
                logger.warning("%s: collection %s failed: %s", self.source_id, collection_id, exc)
                last_error = exc
                continue

            logger.info("%s: collection %s returned %d granule(s)", self.source_id, collection_id, len(entries))
            if entries:
                return self._success(self.build_payload(collection_id, entries), self.source_label(collection_id))

        if last_error is not None:
            raise last_error
        return Empty(source_id=self.source_id)


class SmapArchiveAdapter(CmrGranuleAdapter):
    """Broad SMAP archive search; a hit means real SMAP coverage exists."""

    kind = "cmr_smap_archive"
    quality = "real"
    label = "NASA EarthData SMAP Real Data"

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("collection_ids", SMAP_ARCHIVE_COLLECTIONS)
        kwargs.setdefault("timeout_seconds", 20.0)
        kwargs.setdefault("bbox_half_deg", 10.0)
        kwargs.setdefault("page_size", 5)
        kwargs.setdefault("window_start", date(2023, 1, 1))
        kwargs.setdefault("window_end", date(2024, 12, 31))
        super().__init__(**kwargs)


class SmapGranuleAdapter(CmrGranuleAdapter):
    """Narrow recent-granule SMAP search; scrapes a moisture figure from metadata."""

    kind = "cmr_smap_granule"
    quality = "operational"
    label = "SMAP L3 Daily Global 9km - Real NASA Data"
    default_moisture = 0.25

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("collection_ids", (SMAP_L3_COLLECTION,))
        kwargs.setdefault("timeout_seconds", 10.0)
        kwargs.setdefault("bbox_half_deg", 0.1)
        kwargs.setdefault("page_size", 1)
        kwargs.setdefault("lookback_days", 30)
        super().__init__(**kwargs)

    def source_label(self, collection_id: str) -> str:
        return self.label

    def build_payload(self, collection_id: str, entries: list[dict[str, Any]]) -> dict[str, Any]:
        payload = super().build_payload(collection_id, entries)
        # titles carry moisture as a percentage
        scraped = scrape_number(_entry_text(entries[0]), "SM")
        payload["surface_moisture"] = scraped / 100 if scraped is not None else self.default_moisture
        return payload


class ModisGranuleAdapter(CmrGranuleAdapter):
    """MODIS vegetation-index granule search with NDVI metadata scraping."""

    kind = "cmr_modis_granule"
    quality = "operational"
    label = "MODIS Terra/Aqua 250m - Real NASA Data"

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("collection_ids", (MODIS_VI_COLLECTION,))
        kwargs.setdefault("timeout_seconds", 15.0)
        kwargs.setdefault("bbox_half_deg", 2.0)
        kwargs.setdefault("page_size", 10)
        kwargs.setdefault("lookback_days", 90)
        super().__init__(**kwargs)

    def source_label(self, collection_id: str) -> str:
        return self.label

    def build_payload(self, collection_id: str, entries: list[dict[str, Any]]) -> dict[str, Any]:
        entry = entries[0]
        payload = super().build_payload(collection_id, entries)
        ndvi = scrape_number(_entry_text(entry), "NDVI")
        if ndvi is not None and ndvi > 1:
            ndvi = ndvi / 10000  # MODIS scale factor
        payload["ndvi"] = ndvi
        links = entry.get("links") or []
        payload["data_urls"] = [
            link["href"]
            for link in links
            if isinstance(link, dict) and link.get("rel") == DATA_LINK_REL and link.get("href")
        ]
        return payload


class GranuleProbeAdapter(CmrGranuleAdapter):
    """Existence check for granules on the search date around a point.

    ``signal`` names the field-grid baseline a hit informs (``moisture`` or ``ndvi``).
    """

    kind = "cmr_probe"
    quality = "operational"
    label = "NASA CMR granule probe"

    def __init__(self, *, signal: str = "", **kwargs: Any) -> None:
        self.signal = signal
        kwargs.setdefault("timeout_seconds", 15.0)
        kwargs.setdefault("bbox_half_deg", 0.5)
        kwargs.setdefault("page_size", 5)
        kwargs.setdefault("lookback_days", 0)
        super().__init__(**kwargs)

    def build_payload(self, collection_id: str, entries: list[dict[str, Any]]) -> dict[str, Any]:
        return {"collection_id": collection_id, "granule_count": len(entries)}
