import asyncio
from collections.abc import Callable
from typing import Any

import numpy as np
import pytest
from fastapi.testclient import TestClient

from agri_eo_api.cache import InMemoryCacheStore
from agri_eo_api.config import Settings
from agri_eo_api.gateway import FIELD_GRID_PROBES, SOIL_MOISTURE, VEGETATION_INDEX, Gateway
from agri_eo_api.main import create_app
from agri_eo_api.sources.base import Empty, SourceQuery, SourceResult


class FixedRandom:
    """Random source that always draws the same value."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self, size: Any = None) -> Any:
        if size is None:
            return self.value
        return np.full(size, self.value)


class StubAdapter:
    """Adapter returning a canned result, optionally after a delay or by raising."""

    kind = "stub"

    def __init__(
        self,
        source_id: str,
        result: SourceResult | None = None,
        *,
        raises: Exception | None = None,
        delay: float = 0.0,
        timeout_seconds: float = 1.0,
        signal: str = "",
    ) -> None:
        self.source_id = source_id
        self.result = result if result is not None else Empty(source_id=source_id)
        self.raises = raises
        self.delay = delay
        self.timeout_seconds = timeout_seconds
        self.signal = signal
        self.calls: list[SourceQuery] = []

    async def fetch(self, query: SourceQuery) -> SourceResult:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        return self.result


def empty_chains() -> dict[str, list[StubAdapter]]:
    return {
        SOIL_MOISTURE: [StubAdapter("smap-archive"), StubAdapter("smap-recent")],
        VEGETATION_INDEX: [StubAdapter("appeears-point"), StubAdapter("modis-granules"), StubAdapter("ornl-subset")],
        FIELD_GRID_PROBES: [
            StubAdapter("smap-probe", signal="moisture"),
            StubAdapter("modis-probe", signal="ndvi"),
        ],
    }


@pytest.fixture
def make_gateway() -> Callable[..., Gateway]:
    def _make(
        chains: dict[str, list[Any]] | None = None,
        *,
        rng: Any = None,
        cache: InMemoryCacheStore | None = None,
        default_credential: str | None = None,
        request_deadline_seconds: float | None = None,
    ) -> Gateway:
        return Gateway(
            chains=chains if chains is not None else empty_chains(),
            cache=cache or InMemoryCacheStore(),
            rng=rng if rng is not None else np.random.default_rng(7),
            default_credential=default_credential,
            request_deadline_seconds=request_deadline_seconds,
        )

    return _make


@pytest.fixture
def gateway(make_gateway: Callable[..., Gateway]) -> Gateway:
    return make_gateway()


@pytest.fixture
def client(gateway: Gateway) -> TestClient:
    return TestClient(create_app(settings=Settings(), gateway=gateway))
