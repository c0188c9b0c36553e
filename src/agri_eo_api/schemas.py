"""Pydantic response models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Status(StrEnum):
    """Service status values."""

    RUNNING = "running"
    HEALTHY = "healthy"


class Quality(StrEnum):
    """Provenance tier attached to every reading."""

    REAL = "real"
    OPERATIONAL = "operational"
    INTERPOLATED = "interpolated"
    FALLBACK = "fallback"


class CropClass(StrEnum):
    BARE_SOIL = "bare_soil"
    CORN = "corn"
    WHEAT = "wheat"
    PASTURE = "pasture"


class Coordinates(BaseModel):
    lat: float
    lon: float


class SoilMoistureReading(BaseModel):
    """SMAP-style soil moisture reading."""

    surface_moisture: float
    root_zone_moisture: float
    moisture_error: float
    surface_temperature: float
    vegetation_opacity: float
    retrieval_quality: int
    timestamp: str
    source: str
    coordinates: Coordinates
    resolution: str = "9km"
    quality: Quality
    granule_id: str | None = None
    granule_title: str | None = None
    collection_used: str | None = None
    error: str | None = None
    cached: bool | None = None


class VegetationIndexReading(BaseModel):
    """MODIS-style vegetation index reading."""

    ndvi: float
    evi: float
    quality: Quality
    cloud_state: str
    timestamp: str
    source: str
    location: Coordinates
    resolution: int = 250
    granule_id: str | None = None
    data_urls: list[str] | None = None
    error: str | None = None
    cached: bool | None = None


class ReflectanceBands(BaseModel):
    red: float
    green: float
    blue: float
    nir: float
    swir1: float
    swir2: float


class ImageryReading(BaseModel):
    """Landsat-style per-band reflectance record."""

    ndvi: float
    temperature: float
    bands: ReflectanceBands
    timestamp: str
    source: str
    coordinates: Coordinates
    resolution: str = "30m"
    cloud_cover: float
    quality: Quality
    error: str | None = None
    cached: bool | None = None


class FieldPixel(BaseModel):
    """One cell of a synthesized field grid."""

    id: str
    x: int
    y: int
    lat: float
    lon: float
    ndvi: float = Field(ge=0.0, le=1.0)
    moisture: float = Field(ge=0.0, le=1.0)
    temperature: float
    cropType: CropClass
    health: float = Field(ge=0.0, le=1.0)
    irrigation: bool
    source: dict[str, str] = Field(default_factory=dict)


class FieldGrid(BaseModel):
    pixels: list[FieldPixel]
    gridSize: int
    resolution: int
    center: Coordinates
    timestamp: str
    dataSource: str
    pixelCount: int
    quality: Quality
    error: str | None = None
    cached: bool | None = None


class SourceInfo(BaseModel):
    id: str
    kind: str
    timeoutSeconds: float


class HealthResponse(BaseModel):
    """Service inventory and cache state."""

    status: Status
    service: str
    endpoints: list[str]
    upstreams: dict[str, list[SourceInfo]]
    cache_size: int
    cache: dict[str, Any]


class ServiceIndex(BaseModel):
    service: str
    status: Status
    version: str
    endpoints: list[str]
    cache_size: int
    documentation: str
