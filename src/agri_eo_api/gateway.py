"""Per-endpoint orchestration: cache, fallback chain, synthesis.

Every public handler answers. Upstream failures are absorbed by the resolver;
anything that still goes wrong inside a handler is logged and replaced by a
synthetic payload tagged ``quality: "fallback"`` with an ``error`` note.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import date, datetime, timezone
from typing import Any

from agri_eo_api.auth import AuthContext
from agri_eo_api.cache import CacheStore, InMemoryCacheStore, build_cache_key
from agri_eo_api.config import Settings
from agri_eo_api.field_grid import (
    DEFAULT_RESOLUTION_M,
    GridBaseline,
    build_grid,
    grid_size_for_resolution,
    sample_baseline,
)
from agri_eo_api.resolver import probe_all, resolve
from agri_eo_api.schemas import (
    Coordinates,
    FieldGrid,
    ImageryReading,
    Quality,
    ReflectanceBands,
    SoilMoistureReading,
    VegetationIndexReading,
)
from agri_eo_api.sources import build_chains
from agri_eo_api.sources.base import Location, SourceAdapter, SourceQuery, SourceResult, Success, describe
from agri_eo_api.sources.registry import SourceRegistryDocument, load_source_registry
from agri_eo_api.synthesis import (
    RandomSource,
    default_random_source,
    draw,
    synthetic_moisture,
    synthetic_ndvi,
    synthetic_temperature,
)

logger = logging.getLogger(__name__)

SOIL_MOISTURE = "soil_moisture"
VEGETATION_INDEX = "vegetation_index"
IMAGERY = "imagery"
FIELD_GRID = "field_grid"
FIELD_GRID_PROBES = "field_grid_probes"

SMAP_RESOLUTION = "9km"
MODIS_RESOLUTION_M = 250
LANDSAT_RESOLUTION = "30m"
UNAVAILABLE_NOTE = "API temporarily unavailable"

Payload = dict[str, Any]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _dump(model: Any) -> Payload:
    return model.model_dump(mode="json", exclude_none=True)


def _rain_variant(recent_precipitation_mm: float | None) -> str | None:
    if recent_precipitation_mm is None:
        return None
    return f"rain={recent_precipitation_mm:g}"


class Gateway:
    """Satellite data aggregation gateway."""

    def __init__(
        self,
        *,
        chains: Mapping[str, Sequence[SourceAdapter]],
        cache: CacheStore,
        rng: RandomSource | None = None,
        default_credential: str | None = None,
        request_deadline_seconds: float | None = None,
        adapter_deadline_ms: int = 30_000,
    ) -> None:
        self.chains = {name: list(chain) for name, chain in chains.items()}
        self.cache = cache
        self.rng = rng if rng is not None else default_random_source()
        self.default_credential = default_credential
        self.request_deadline_seconds = request_deadline_seconds
        self.adapter_deadline_ms = adapter_deadline_ms

    def _query(self, location: Location, date_value: date | None, auth: AuthContext) -> SourceQuery:
        return SourceQuery(
            location=location,
            date=date_value,
            deadline_ms=self.adapter_deadline_ms,
            credential=auth.token or self.default_credential,
        )

    async def _answer(
        self,
        category: str,
        key: str,
        produce: Callable[[], Awaitable[Payload]],
        fallback: Callable[[], Payload],
    ) -> Payload:
        try:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s", key)
                return {**cached, "cached": True}

            payload = await produce()
            self.cache.put(key, payload)
            return payload
        except Exception:
            logger.exception("%s handler failed for %s; serving fallback data", category, key)
            return fallback()

    # soil moisture

    async def soil_moisture(
        self,
        location: Location,
        date_value: date | None,
        auth: AuthContext,
        recent_precipitation_mm: float | None = None,
    ) -> Payload:
        """Soil moisture at a point.

        ``recent_precipitation_mm`` is supplied by the caller and only nudges
        synthesised values; upstream readings are used as they are.
        """
        key = build_cache_key(
            SOIL_MOISTURE,
            location.lat,
            location.lon,
            date_value,
            SMAP_RESOLUTION,
            caller_supplied=auth.caller_supplied,
            variant=_rain_variant(recent_precipitation_mm),
        )

        async def produce() -> Payload:
            logger.info("Fetching soil moisture for lat=%s lon=%s", location.lat, location.lon)
            result = await resolve(
                self.chains.get(SOIL_MOISTURE, []),
                self._query(location, date_value, auth),
                overall_deadline_seconds=self.request_deadline_seconds,
            )
            return _dump(self._soil_reading(location, result, recent_precipitation_mm))

        return await self._answer(
            SOIL_MOISTURE,
            key,
            produce,
            lambda: _dump(self._soil_fallback(location, recent_precipitation_mm)),
        )

    def _soil_reading(
        self,
        location: Location,
        result: SourceResult,
        recent_precipitation_mm: float | None = None,
    ) -> SoilMoistureReading:
        coordinates = Coordinates(lat=location.lat, lon=location.lon)
        if not isinstance(result, Success):
            surface = synthetic_moisture(location.lat, self.rng, recent_precipitation_mm)
            return SoilMoistureReading(
                surface_moisture=round(surface, 3),
                root_zone_moisture=round(draw(self.rng, (0.12, 0.27)), 3),
                moisture_error=0.06,
                surface_temperature=round(synthetic_temperature(location.lat, self.rng), 1),
                vegetation_opacity=round(draw(self.rng, (0.05, 0.11)), 3),
                retrieval_quality=1,
                timestamp=utc_now_iso(),
                source="SMAP L3 Daily Global 9km - Interpolated",
                coordinates=coordinates,
                resolution=SMAP_RESOLUTION,
                quality=Quality.INTERPOLATED,
            )

        payload = result.payload
        surface = payload.get("surface_moisture")
        if surface is None:
            # archive coverage confirmed but no value extracted
            surface = draw(self.rng, (0.15, 0.40))
        surface = round(min(max(float(surface), 0.0), 1.0), 3)
        return SoilMoistureReading(
            surface_moisture=surface,
            root_zone_moisture=round(surface * 0.7, 3),
            moisture_error=0.04,
            surface_temperature=round(synthetic_temperature(location.lat, self.rng), 1),
            vegetation_opacity=0.06,
            retrieval_quality=0,
            timestamp=payload.get("time_start") or utc_now_iso(),
            source=result.source_label,
            coordinates=coordinates,
            resolution=SMAP_RESOLUTION,
            quality=Quality(result.quality),
            granule_id=payload.get("granule_id"),
            granule_title=payload.get("granule_title"),
            collection_used=payload.get("collection_id"),
        )

    def _soil_fallback(self, location: Location, recent_precipitation_mm: float | None = None) -> SoilMoistureReading:
        surface = round(synthetic_moisture(location.lat, self.rng, recent_precipitation_mm), 3)
        return SoilMoistureReading(
            surface_moisture=surface,
            root_zone_moisture=round(surface * 0.7, 3),
            moisture_error=0.08,
            surface_temperature=round(synthetic_temperature(location.lat, self.rng), 1),
            vegetation_opacity=round(draw(self.rng, (0.08, 0.12)), 3),
            retrieval_quality=2,
            timestamp=utc_now_iso(),
            source="SMAP Fallback Data",
            coordinates=Coordinates(lat=location.lat, lon=location.lon),
            resolution=SMAP_RESOLUTION,
            quality=Quality.FALLBACK,
            error=UNAVAILABLE_NOTE,
        )

    # vegetation index

    async def vegetation_index(self, location: Location, date_value: date | None, auth: AuthContext) -> Payload:
        key = build_cache_key(
            VEGETATION_INDEX,
            location.lat,
            location.lon,
            date_value,
            MODIS_RESOLUTION_M,
            caller_supplied=auth.caller_supplied,
        )

        async def produce() -> Payload:
            logger.info("Fetching vegetation index for lat=%s lon=%s", location.lat, location.lon)
            result = await resolve(
                self.chains.get(VEGETATION_INDEX, []),
                self._query(location, date_value, auth),
                overall_deadline_seconds=self.request_deadline_seconds,
            )
            return _dump(self._vegetation_reading(location, result))

        return await self._answer(
            VEGETATION_INDEX,
            key,
            produce,
            lambda: _dump(self._vegetation_synthetic(location, Quality.FALLBACK)),
        )

    def _vegetation_reading(self, location: Location, result: SourceResult) -> VegetationIndexReading:
        if not isinstance(result, Success):
            return self._vegetation_synthetic(location, Quality.INTERPOLATED)

        payload = result.payload
        ndvi = payload.get("ndvi")
        if ndvi is None:
            ndvi = synthetic_ndvi(location.lat, self.rng)
        evi = payload.get("evi")
        if evi is None:
            evi = ndvi * 0.85
        cloud_state = payload.get("cloud_state") or ("cloudy" if float(self.rng.random()) > 0.8 else "clear")
        return VegetationIndexReading(
            ndvi=round(float(ndvi), 3),
            evi=round(float(evi), 3),
            quality=Quality(result.quality),
            cloud_state=cloud_state,
            timestamp=payload.get("time_start") or utc_now_iso(),
            source=result.source_label,
            location=Coordinates(lat=location.lat, lon=location.lon),
            resolution=MODIS_RESOLUTION_M,
            granule_id=payload.get("granule_id"),
            data_urls=payload.get("data_urls"),
        )

    def _vegetation_synthetic(self, location: Location, quality: Quality) -> VegetationIndexReading:
        ndvi = synthetic_ndvi(location.lat, self.rng)
        fallback = quality is Quality.FALLBACK
        return VegetationIndexReading(
            ndvi=round(ndvi, 3),
            evi=round(ndvi * 0.85, 3),
            quality=quality,
            cloud_state="clear",
            timestamp=utc_now_iso(),
            source="MODIS Fallback Data" if fallback else "MODIS Terra/Aqua - Interpolated",
            location=Coordinates(lat=location.lat, lon=location.lon),
            resolution=MODIS_RESOLUTION_M,
            error=UNAVAILABLE_NOTE if fallback else None,
        )

    # imagery (synthetic only)

    async def imagery(self, location: Location, date_value: date | None, auth: AuthContext) -> Payload:
        key = build_cache_key(
            IMAGERY,
            location.lat,
            location.lon,
            date_value,
            LANDSAT_RESOLUTION,
            caller_supplied=auth.caller_supplied,
        )

        async def produce() -> Payload:
            return _dump(self._imagery_reading(location, Quality.INTERPOLATED))

        return await self._answer(IMAGERY, key, produce, lambda: _dump(self._imagery_reading(location, Quality.FALLBACK)))

    def _imagery_reading(self, location: Location, quality: Quality) -> ImageryReading:
        bands = ReflectanceBands(
            red=round(draw(self.rng, (0.15, 0.45)), 4),
            green=round(draw(self.rng, (0.18, 0.53)), 4),
            blue=round(draw(self.rng, (0.12, 0.37)), 4),
            nir=round(draw(self.rng, (0.35, 0.75)), 4),
            swir1=round(draw(self.rng, (0.20, 0.50)), 4),
            swir2=round(draw(self.rng, (0.15, 0.40)), 4),
        )
        return ImageryReading(
            ndvi=round(synthetic_ndvi(location.lat, self.rng), 3),
            temperature=round(synthetic_temperature(location.lat, self.rng), 1),
            bands=bands,
            timestamp=utc_now_iso(),
            source="Landsat 8/9",
            coordinates=Coordinates(lat=location.lat, lon=location.lon),
            resolution=LANDSAT_RESOLUTION,
            cloud_cover=round(draw(self.rng, (0.0, 20.0)), 1),
            quality=quality,
            error=UNAVAILABLE_NOTE if quality is Quality.FALLBACK else None,
        )

    # field grid

    async def field_grid(self, location: Location, resolution: int | None, auth: AuthContext) -> Payload:
        pixel_size = resolution or DEFAULT_RESOLUTION_M
        key = build_cache_key(
            FIELD_GRID,
            location.lat,
            location.lon,
            None,
            pixel_size,
            caller_supplied=auth.caller_supplied,
        )

        async def produce() -> Payload:
            probes = self.chains.get(FIELD_GRID_PROBES, [])
            results = await probe_all(probes, self._query(location, None, auth))
            hits = {
                adapter.source_id: isinstance(result, Success) and bool(result.payload)
                for adapter, result in zip(probes, results)
            }
            for adapter, result in zip(probes, results):
                if isinstance(result, Success):
                    logger.info(
                        "Probe %s found %s granule(s) near the grid",
                        adapter.source_id,
                        result.payload.get("granule_count", "some"),
                    )

            baseline = sample_baseline(
                location.lat,
                self.rng,
                moisture_signal=self._probe_signal(probes, hits, "moisture"),
                ndvi_signal=self._probe_signal(probes, hits, "ndvi"),
            )
            labels = {source_id: "granules nearby" if hit else "synthetic pattern" for source_id, hit in hits.items()}
            any_hit = any(hits.values())
            return self._grid_payload(
                location,
                pixel_size,
                baseline,
                labels,
                quality=Quality.OPERATIONAL if any_hit else Quality.INTERPOLATED,
                data_source=(
                    "NASA CMR granule availability + synthesized spatial field"
                    if any_hit
                    else "Synthesized spatial field (no nearby granules found)"
                ),
            )

        def fallback() -> Payload:
            return self._grid_payload(
                location,
                pixel_size,
                sample_baseline(location.lat, self.rng),
                {"simulation": "fallback"},
                quality=Quality.FALLBACK,
                data_source="Fallback simulation - API temporarily unavailable",
                error="Real satellite data temporarily unavailable",
            )

        return await self._answer(FIELD_GRID, key, produce, fallback)

    @staticmethod
    def _probe_signal(probes: Sequence[SourceAdapter], hits: Mapping[str, bool], signal: str) -> bool:
        return any(hits.get(adapter.source_id) for adapter in probes if getattr(adapter, "signal", "") == signal)

    def _grid_payload(
        self,
        location: Location,
        pixel_size: int,
        baseline: GridBaseline,
        labels: dict[str, str],
        *,
        quality: Quality,
        data_source: str,
        error: str | None = None,
    ) -> Payload:
        grid_size = grid_size_for_resolution(pixel_size)
        logger.info("Generating %dx%d field grid at %sm", grid_size, grid_size, pixel_size)
        pixels = build_grid(location, pixel_size, grid_size, self.rng, baseline, labels)
        grid = FieldGrid(
            pixels=pixels,
            gridSize=grid_size,
            resolution=pixel_size,
            center=Coordinates(lat=location.lat, lon=location.lon),
            timestamp=utc_now_iso(),
            dataSource=data_source,
            pixelCount=len(pixels),
            quality=quality,
            error=error,
        )
        return _dump(grid)

    # inventory

    def upstream_inventory(self) -> dict[str, list[dict[str, Any]]]:
        return {name: [describe(adapter) for adapter in chain] for name, chain in self.chains.items()}


def build_gateway(
    settings: Settings,
    *,
    registry: SourceRegistryDocument | None = None,
    cache: CacheStore | None = None,
    rng: RandomSource | None = None,
    transport: Any = None,
) -> Gateway:
    """Wire a gateway from settings and the source registry."""

    registry = registry or load_source_registry(settings.sources_config)
    cache = cache or InMemoryCacheStore(
        default_ttl_seconds=settings.default_cache_ttl_seconds,
        category_ttls=settings.cache_ttls,
        max_entries=settings.cache_max_entries,
    )
    return Gateway(
        chains=build_chains(registry, settings, transport=transport),
        cache=cache,
        rng=rng if rng is not None else default_random_source(settings.random_seed),
        default_credential=settings.default_token,
        request_deadline_seconds=settings.request_deadline_seconds,
    )
