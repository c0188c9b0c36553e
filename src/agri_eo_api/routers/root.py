"""Root API endpoints."""

from fastapi import APIRouter, Depends

from agri_eo_api import __version__
from agri_eo_api.gateway import Gateway
from agri_eo_api.routers.satellite import get_gateway
from agri_eo_api.schemas import HealthResponse, ServiceIndex, SourceInfo, Status

router = APIRouter(tags=["System"])

SERVICE_NAME = "Agricultural Satellite Data Gateway"
ENDPOINTS = [
    "/soil-moisture",
    "/vegetation-index",
    "/imagery",
    "/field-grid",
    "/health",
]


@router.get("/")
def read_index(gateway: Gateway = Depends(get_gateway)) -> ServiceIndex:
    """Return the service name, endpoint list and cache size."""
    return ServiceIndex(
        service=SERVICE_NAME,
        status=Status.RUNNING,
        version=__version__,
        endpoints=ENDPOINTS,
        cache_size=gateway.cache.size(),
        documentation="/docs",
    )


@router.get("/health")
@router.get("/api/health", include_in_schema=False)
def health(gateway: Gateway = Depends(get_gateway)) -> HealthResponse:
    """Return the static inventory plus current cache state."""
    upstreams = {
        name: [SourceInfo.model_validate(info) for info in chain]
        for name, chain in gateway.upstream_inventory().items()
    }
    return HealthResponse(
        status=Status.HEALTHY,
        service=SERVICE_NAME,
        endpoints=ENDPOINTS,
        upstreams=upstreams,
        cache_size=gateway.cache.size(),
        cache=gateway.cache.stats(),
    )


@router.delete("/cache")
def clear_cache(gateway: Gateway = Depends(get_gateway)) -> dict[str, int]:
    removed = gateway.cache.size()
    gateway.cache.clear()
    return {"cleared": removed}
