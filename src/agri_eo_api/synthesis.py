"""Latitude-banded synthetic values used when no upstream has data.

Vegetation density and thermal regime are assumed to follow absolute
latitude. The band thresholds below are fixed; only the draws inside each
band are random.
"""

from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np


class RandomSource(Protocol):
    """Uniform [0, 1) draws; ``numpy.random.Generator`` satisfies this."""

    def random(self, size: Any = None) -> Any: ...


Range = tuple[float, float]


@dataclass(frozen=True)
class LatitudeBand:
    name: str
    ndvi: Range
    moisture: Range
    temperature_c: Range


POLAR = LatitudeBand("polar", ndvi=(0.01, 0.06), moisture=(0.05, 0.15), temperature_c=(-20.0, 10.0))
SUBPOLAR = LatitudeBand("subpolar", ndvi=(0.05, 0.20), moisture=(0.10, 0.25), temperature_c=(-10.0, 15.0))
TROPICAL = LatitudeBand("tropical", ndvi=(0.50, 0.85), moisture=(0.25, 0.45), temperature_c=(20.0, 35.0))
TEMPERATE = LatitudeBand("temperate", ndvi=(0.25, 0.70), moisture=(0.18, 0.38), temperature_c=(5.0, 30.0))

MAX_MOISTURE = 0.5
RAIN_SATURATION_MM = 25.0
RAIN_MOISTURE_BOOST = 0.05


def latitude_band(lat: float) -> LatitudeBand:
    abs_lat = abs(lat)
    if abs_lat > 70:
        return POLAR
    if abs_lat > 60:
        return SUBPOLAR
    if abs_lat < 23.5:
        return TROPICAL
    return TEMPERATE


def draw(rng: RandomSource, bounds: Range) -> float:
    low, high = bounds
    return low + float(rng.random()) * (high - low)


def synthetic_ndvi(lat: float, rng: RandomSource) -> float:
    return draw(rng, latitude_band(lat).ndvi)


def synthetic_temperature(lat: float, rng: RandomSource) -> float:
    return draw(rng, latitude_band(lat).temperature_c)


def synthetic_moisture(lat: float, rng: RandomSource, recent_precipitation_mm: float | None = None) -> float:
    """Volumetric surface moisture for the latitude band.

    Recent rain raises the draw by up to ``RAIN_MOISTURE_BOOST`` once it
    reaches ``RAIN_SATURATION_MM``.
    """
    value = draw(rng, latitude_band(lat).moisture)
    if recent_precipitation_mm:
        wetness = min(max(recent_precipitation_mm, 0.0), RAIN_SATURATION_MM) / RAIN_SATURATION_MM
        value += wetness * RAIN_MOISTURE_BOOST
    return min(value, MAX_MOISTURE)


def default_random_source(seed: int | None = None) -> np.random.Generator:
    return np.random.default_rng(seed)
