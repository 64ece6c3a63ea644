"""
Base fetcher interface and shared record types for all feed providers.
"""
from __future__ import annotations
from abc import ABC
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional
import logging

import httpx

logger = logging.getLogger(__name__)

# iso3 → latest non-null value for one indicator
IndicatorMap = dict[str, float]


@dataclass
class GeoFeature:
    """One country polygon from the geo-reference feed."""
    name: str
    iso2: str
    iso3: str
    geometry: Optional[dict] = field(default=None, repr=False)


@dataclass
class HazardEvent:
    """
    A planetary-hazard or seismic event normalized for map overlay display.

    EONET events carry ``date``; USGS events carry ``timestamp`` (epoch ms),
    ``val`` (magnitude) and ``location``. Unset optionals are left out of
    the serialized form.
    """
    id: str
    type: str
    lat: float
    lng: float
    title: str
    date: Optional[str] = None
    timestamp: Optional[int] = None
    val: Optional[float] = None
    location: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "lat": self.lat,
            "lng": self.lng,
        }
        for key in ("date", "val", "location", "timestamp"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


class BaseFetcher(ABC):
    """
    Abstract base for all feed fetchers.

    A shared ``httpx.AsyncClient`` may be injected (the pipeline does this to
    reuse one connection pool, tests do it to mount a mock transport);
    otherwise each call opens its own short-lived client.
    """

    provider_name: str = "base"

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._timeout = timeout
        self._shared_client = client

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._shared_client is not None:
            yield self._shared_client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client
