"""Synthesis of spatially coherent per-pixel agricultural readings."""

from dataclasses import dataclass

import numpy as np

from agri_eo_api.schemas import CropClass, FieldPixel
from agri_eo_api.sources.base import Location
from agri_eo_api.synthesis import RandomSource, draw, synthetic_temperature

METERS_PER_DEGREE = 111_000.0
DEFAULT_RESOLUTION_M = 30
DEFAULT_GRID_SIZE = 12
GRID_SIZES = {
    10: 15,  # Sentinel-2
    30: 12,  # Landsat
    250: 8,  # MODIS
}

DEFAULT_BASE_NDVI = 0.4
DEFAULT_BASE_MOISTURE = 0.25
NDVI_SIGNAL_RANGE = (0.3, 0.7)
MOISTURE_SIGNAL_RANGE = (0.2, 0.4)

NDVI_BOUNDS = (0.05, 0.9)
MOISTURE_BOUNDS = (0.05, 0.5)
HEALTH_BOUNDS = (0.1, 1.0)


def grid_size_for_resolution(resolution_m: int) -> int:
    """Finer pixels get a larger (but capped) grid."""
    return GRID_SIZES.get(resolution_m, DEFAULT_GRID_SIZE)


def wrap_longitude(lon: np.ndarray) -> np.ndarray:
    """Bring longitudes past the antimeridian back into [-180, 180]."""
    wrapped = (lon + 180.0) % 360.0 - 180.0
    return np.where(np.abs(lon) > 180.0, wrapped, lon)


@dataclass(frozen=True)
class GridBaseline:
    ndvi: float
    moisture: float
    temperature_c: float


def sample_baseline(
    lat: float,
    rng: RandomSource,
    *,
    moisture_signal: bool = False,
    ndvi_signal: bool = False,
) -> GridBaseline:
    """Draw the request-level baseline once.

    A positive probe only tells us data exists nearby, so it re-draws the
    baseline from a slightly wetter/greener range instead of using values.
    """
    ndvi = draw(rng, NDVI_SIGNAL_RANGE) if ndvi_signal else DEFAULT_BASE_NDVI
    moisture = draw(rng, MOISTURE_SIGNAL_RANGE) if moisture_signal else DEFAULT_BASE_MOISTURE
    return GridBaseline(ndvi=ndvi, moisture=moisture, temperature_c=synthetic_temperature(lat, rng))


def _classify(ndvi: np.ndarray, crop_draw: np.ndarray) -> np.ndarray:
    dense = np.where(crop_draw > 0.5, CropClass.CORN.value, CropClass.WHEAT.value)
    moderate = np.where(crop_draw > 0.6, CropClass.WHEAT.value, CropClass.PASTURE.value)
    return np.where(ndvi > 0.6, dense, np.where(ndvi > 0.35, moderate, CropClass.BARE_SOIL.value))


def build_grid(
    center: Location,
    pixel_size_m: float,
    grid_size: int,
    rng: RandomSource,
    baseline: GridBaseline,
    source_labels: dict[str, str] | None = None,
) -> list[FieldPixel]:
    """Build a ``grid_size`` x ``grid_size`` field around ``center``.

    Values are rounded before classification so the published numbers obey
    the class thresholds exactly.
    """
    shape = (grid_size, grid_size)
    half = grid_size / 2
    rows, cols = np.indices(shape)

    lats = np.round(np.clip(center.lat + (rows - half) * pixel_size_m / METERS_PER_DEGREE, -90.0, 90.0), 6)
    lons = np.round(wrap_longitude(center.lon + (cols - half) * pixel_size_m / METERS_PER_DEGREE), 6)
    distance = np.minimum(np.hypot(rows - half, cols - half) / half, 1.0)
    ripple = 0.1 * np.sin(rows * 0.5) * np.cos(cols * 0.5)

    ndvi = np.round(np.clip(baseline.ndvi + ripple + (rng.random(shape) - 0.5) * 0.15, *NDVI_BOUNDS), 3)
    moisture = np.round(
        np.clip(baseline.moisture - distance * 0.1 + (rng.random(shape) - 0.5) * 0.1, *MOISTURE_BOUNDS),
        3,
    )
    temperature = np.round(baseline.temperature_c + (rng.random(shape) - 0.5) * 8, 1)
    crops = _classify(ndvi, rng.random(shape))

    expected_moisture = np.where(ndvi > 0.5, 0.25, 0.15)
    health = np.round(np.clip(1 - 2 * np.abs(moisture - expected_moisture), *HEALTH_BOUNDS), 3)
    irrigation = (moisture > 0.3) & (crops != CropClass.BARE_SOIL.value)

    labels = dict(source_labels or {})
    pixels: list[FieldPixel] = []
    for i in range(grid_size):
        for j in range(grid_size):
            pixels.append(
                FieldPixel(
                    id=f"{j}_{i}",
                    x=j,
                    y=i,
                    lat=float(lats[i, j]),
                    lon=float(lons[i, j]),
                    ndvi=float(ndvi[i, j]),
                    moisture=float(moisture[i, j]),
                    temperature=float(temperature[i, j]),
                    cropType=CropClass(str(crops[i, j])),
                    health=float(health[i, j]),
                    irrigation=bool(irrigation[i, j]),
                    source=labels,
                )
            )
    return pixels
