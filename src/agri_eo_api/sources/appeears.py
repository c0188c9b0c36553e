"""AppEEARS point-extraction adapter for MODIS vegetation indices."""

import logging
from datetime import timedelta
from typing import Any

from agri_eo_api.sources.base import AdapterError, Empty, SourceQuery, Success
from agri_eo_api.sources.http import HttpSourceAdapter

logger = logging.getLogger(__name__)

MODIS_SCALE = 10000.0
POINT_ID = "point1"


def _first_number(values: Any, field_name: str) -> float | None:
    if values is None:
        return None
    if not isinstance(values, list) or not values:
        raise AdapterError(f"AppEEARS field {field_name} is not a non-empty list")
    value = values[0]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AdapterError(f"AppEEARS field {field_name} is not numeric")
    return float(value)


class AppeearsPointAdapter(HttpSourceAdapter):
    kind = "appeears_point"
    quality = "real"
    label = "NASA AppEEARS MODIS Real Data"

    def __init__(
        self,
        *,
        product: str = "MOD13Q1.061",
        ndvi_layer: str = "_250m_16_days_NDVI",
        evi_layer: str = "_250m_16_days_EVI",
        lookback_days: int = 90,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("timeout_seconds", 25.0)
        super().__init__(**kwargs)
        self.product = product
        self.ndvi_layer = ndvi_layer
        self.evi_layer = evi_layer
        self.lookback_days = lookback_days

    def _response_key(self, layer: str) -> str:
        return f"{self.product.replace('.', '_')}_{layer}"

    def request_body(self, query: SourceQuery) -> dict[str, Any]:
        end = query.search_date()
        start = end - timedelta(days=self.lookback_days)
        return {
            "dates": [{"startDate": start.isoformat(), "endDate": end.isoformat()}],
            "layers": [
                {"product": self.product, "layer": self.ndvi_layer},
                {"product": self.product, "layer": self.evi_layer},
            ],
            "coordinates": [
                {"latitude": query.location.lat, "longitude": query.location.lon, "id": POINT_ID},
            ],
        }

    async def _lookup(self, query: SourceQuery) -> Success | Empty:
        url = f"{self.base_url}/point"
        logger.info("%s: requesting %s point extraction", self.source_id, self.product)
        payload = await self._request("POST", url, query, json_body=self.request_body(query))
        if not isinstance(payload, dict):
            raise AdapterError("AppEEARS response is not a JSON object")

        point = payload.get(POINT_ID)
        if not isinstance(point, dict):
            logger.info("%s: no point record returned", self.source_id)
            return Empty(source_id=self.source_id)

        ndvi_key = self._response_key(self.ndvi_layer)
        ndvi_raw = _first_number(point.get(ndvi_key), ndvi_key)
        if ndvi_raw is None:
            logger.info("%s: point record has no %s values", self.source_id, ndvi_key)
            return Empty(source_id=self.source_id)

        evi_key = self._response_key(self.evi_layer)
        evi_raw = _first_number(point.get(evi_key), evi_key)
        ndvi = ndvi_raw / MODIS_SCALE
        evi = evi_raw / MODIS_SCALE if evi_raw is not None else ndvi * 0.85
        logger.info("%s: got ndvi=%.3f evi=%.3f", self.source_id, ndvi, evi)
        return self._success({"ndvi": ndvi, "evi": evi, "cloud_state": "clear"}, self.label)
