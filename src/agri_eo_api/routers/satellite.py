"""Satellite data endpoints.

Each route also answers on the path the legacy browser client used
(``/api/...``); those aliases are hidden from the OpenAPI schema.
"""

import math
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, Header, Query, Request

from agri_eo_api.auth import AuthContext, auth_context
from agri_eo_api.errors import invalid_parameter
from agri_eo_api.gateway import Gateway
from agri_eo_api.sources.base import Location

router = APIRouter(tags=["Satellite data"])


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_auth(request: Request, authorization: str | None = Header(default=None)) -> AuthContext:
    gateway: Gateway = request.app.state.gateway
    return auth_context(authorization, gateway.default_credential)


def _parse_coordinate(raw: str | None, name: str, limit: float) -> float:
    if raw is None or not raw.strip():
        raise invalid_parameter(f"{name} is required")
    try:
        value = float(raw)
    except ValueError as exc:
        raise invalid_parameter(f"{name} must be a number") from exc
    if value != value or not -limit <= value <= limit:
        raise invalid_parameter(f"{name} must be between {-limit:g} and {limit:g}")
    return value


def _parse_location(lat: str | None, lon: str | None) -> Location:
    return Location(lat=_parse_coordinate(lat, "lat", 90), lon=_parse_coordinate(lon, "lon", 180))


def _iso_date(value: str) -> date:
    """Parse ``YYYY-MM-DD``, or a full ISO timestamp whose day is used."""
    if "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return date.fromisoformat(value)


def _parse_date(raw: str | None) -> date | None:
    if raw is None or not raw.strip():
        return None
    try:
        return _iso_date(raw.strip())
    except ValueError as exc:
        raise invalid_parameter("date must be an ISO 8601 calendar date (YYYY-MM-DD)") from exc


def _parse_precipitation(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise invalid_parameter("recent_precipitation_mm must be a number") from exc
    if not math.isfinite(value) or value < 0:
        raise invalid_parameter("recent_precipitation_mm must be zero or more")
    return value


def _parse_resolution(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip().removesuffix("m"))
    except ValueError as exc:
        raise invalid_parameter("resolution must be a whole number of meters") from exc
    if value <= 0:
        raise invalid_parameter("resolution must be positive")
    return value


@router.get("/soil-moisture")
@router.get("/api/smap/soil-moisture", include_in_schema=False)
async def soil_moisture(
    lat: str | None = Query(default=None, description="Latitude in decimal degrees"),
    lon: str | None = Query(default=None, description="Longitude in decimal degrees"),
    date_value: str | None = Query(default=None, alias="date", description="YYYY-MM-DD; latest when omitted"),
    recent_precipitation_mm: str | None = Query(
        default=None, description="Rain over the last few days in mm; wets synthesised readings"
    ),
    gateway: Gateway = Depends(get_gateway),
    auth: AuthContext = Depends(get_auth),
) -> dict[str, Any]:
    """SMAP-style soil moisture at a point."""
    return await gateway.soil_moisture(
        _parse_location(lat, lon),
        _parse_date(date_value),
        auth,
        _parse_precipitation(recent_precipitation_mm),
    )


@router.get("/vegetation-index")
@router.get("/api/modis/ndvi", include_in_schema=False)
async def vegetation_index(
    lat: str | None = Query(default=None),
    lon: str | None = Query(default=None),
    date_value: str | None = Query(default=None, alias="date"),
    gateway: Gateway = Depends(get_gateway),
    auth: AuthContext = Depends(get_auth),
) -> dict[str, Any]:
    """MODIS-style NDVI/EVI at a point."""
    return await gateway.vegetation_index(_parse_location(lat, lon), _parse_date(date_value), auth)


@router.get("/imagery")
@router.get("/api/landsat/imagery", include_in_schema=False)
async def imagery(
    lat: str | None = Query(default=None),
    lon: str | None = Query(default=None),
    date_value: str | None = Query(default=None, alias="date"),
    gateway: Gateway = Depends(get_gateway),
    auth: AuthContext = Depends(get_auth),
) -> dict[str, Any]:
    """Landsat-style band reflectances (synthetic only)."""
    return await gateway.imagery(_parse_location(lat, lon), _parse_date(date_value), auth)


@router.get("/field-grid")
@router.get("/api/pixel-hunt/data", include_in_schema=False)
async def field_grid(
    lat: str | None = Query(default=None),
    lon: str | None = Query(default=None),
    resolution: str | None = Query(default=None, description="Pixel size in meters (10, 30 or 250)"),
    gateway: Gateway = Depends(get_gateway),
    auth: AuthContext = Depends(get_auth),
) -> dict[str, Any]:
    """Grid of correlated per-pixel readings around a point."""
    return await gateway.field_grid(_parse_location(lat, lon), _parse_resolution(resolution), auth)
