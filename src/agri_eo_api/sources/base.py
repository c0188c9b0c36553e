"""Upstream source contracts shared by every adapter."""

from dataclasses import dataclass, field
import datetime as dt
from enum import StrEnum
from typing import Any, Protocol

USER_AGENT = "agri-eo-api/0.1"


class AdapterError(Exception):
    """Raised when an upstream call fails or returns something unparseable."""


class AdapterTimeout(AdapterError):
    """Raised when an upstream call does not answer before its deadline."""


class FailureReason(StrEnum):
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class Location:
    lat: float
    lon: float


@dataclass(frozen=True)
class SourceQuery:
    """One lookup, built once per request and handed unchanged to each adapter."""

    location: Location
    date: dt.date | None = None
    deadline_ms: int = 30_000
    credential: str | None = None

    def search_date(self) -> dt.date:
        return self.date or dt.date.today()


@dataclass(frozen=True)
class Success:
    payload: dict[str, Any]
    source_label: str
    source_id: str = ""
    quality: str = "real"


@dataclass(frozen=True)
class Empty:
    source_id: str = ""


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    source_id: str = ""
    detail: str = field(default="", compare=False)


SourceResult = Success | Empty | Failure


class SourceAdapter(Protocol):
    """Protocol implemented by all upstream data providers."""

    source_id: str
    kind: str
    timeout_seconds: float

    async def fetch(self, query: SourceQuery) -> SourceResult: ...


def auth_headers(credential: str | None) -> dict[str, str]:
    headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
    if credential:
        headers["Authorization"] = f"Bearer {credential}"
    return headers


def describe(adapter: SourceAdapter) -> dict[str, Any]:
    return {
        "id": adapter.source_id,
        "kind": adapter.kind,
        "timeoutSeconds": adapter.timeout_seconds,
    }
