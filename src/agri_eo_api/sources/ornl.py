"""ORNL DAAC MODIS subset adapter."""

import logging
from typing import Any

from agri_eo_api.sources.base import AdapterError, Empty, SourceQuery, Success
from agri_eo_api.sources.http import HttpSourceAdapter

logger = logging.getLogger(__name__)

MODIS_SCALE = 10000.0


def _scaled(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        return None
    return float(value) / MODIS_SCALE


class OrnlSubsetAdapter(HttpSourceAdapter):
    kind = "ornl_subset"
    quality = "operational"
    label = "MODIS Terra/Aqua 250m - ORNL DAAC"

    def __init__(self, *, product: str = "MOD13Q1.006", bands: str = "NDVI,EVI", **kwargs: Any) -> None:
        kwargs.setdefault("timeout_seconds", 8.0)
        super().__init__(**kwargs)
        self.product = product
        self.bands = bands

    async def _lookup(self, query: SourceQuery) -> Success | Empty:
        url = f"{self.base_url}/subset/{self.product}"
        search_date = query.search_date().isoformat()
        params = {
            "latitude": query.location.lat,
            "longitude": query.location.lon,
            "startDate": search_date,
            "endDate": search_date,
            "band": self.bands,
            "format": "json",
        }
        logger.info("%s: requesting %s subset for %s", self.source_id, self.product, search_date)
        payload = await self._request("GET", url, query, params=params)
        if not isinstance(payload, dict):
            raise AdapterError("ORNL response is not a JSON object")

        records = payload.get("data") or []
        if not isinstance(records, list):
            raise AdapterError("ORNL data field is not a list")
        logger.info("%s: %d subset record(s)", self.source_id, len(records))
        if not records:
            return Empty(source_id=self.source_id)

        record = records[0] if isinstance(records[0], dict) else {}
        return self._success(
            {
                "ndvi": _scaled(record.get("NDVI")),
                "evi": _scaled(record.get("EVI")),
                "cloud_state": "clear",
            },
            self.label,
        )
