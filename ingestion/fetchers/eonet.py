"""
NASA EONET (Earth Observatory Natural Event Tracker) fetcher.

Endpoint: https://eonet.gsfc.nasa.gov/api/v3/events
Docs: https://eonet.gsfc.nasa.gov/docs/v3

No API key required. Open events (wildfires, storms, volcanoes, sea ice...)
are projected onto the shared HazardEvent display shape using the first
category title and the first geometry point.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from config.settings import EONET_EVENT_LIMIT, EONET_STATUS, EONET_URL, FEED_TIMEOUT_SECONDS
from ingestion.fetchers.base import BaseFetcher, HazardEvent

logger = logging.getLogger(__name__)


class EonetFetcher(BaseFetcher):
    """Fetches open planetary-hazard events from NASA EONET."""

    provider_name = "eonet"

    def __init__(
        self,
        timeout: float = FEED_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        url: str = EONET_URL,
        limit: int = EONET_EVENT_LIMIT,
    ):
        super().__init__(timeout=timeout, client=client)
        self._url = url
        self._limit = limit

    async def fetch_events(self) -> list[HazardEvent]:
        """Best effort: any failure is logged and yields []."""
        logger.info("Scanning planetary surface (NASA EONET)...")
        try:
            async with self._client() as client:
                resp = await client.get(
                    self._url,
                    params={"status": EONET_STATUS, "limit": self._limit},
                )
                resp.raise_for_status()
                data = resp.json()
            events = [
                ev for ev in (_to_hazard(raw) for raw in data["events"])
                if ev is not None
            ]
        except httpx.HTTPStatusError as exc:
            logger.warning("NASA EONET HTTP error: %s", exc.response.status_code)
            return []
        except Exception as exc:
            logger.warning("Failed to fetch NASA EONET data: %s", exc)
            return []

        logger.info("NASA EONET: %d open events", len(events))
        return events


def _to_hazard(raw: dict[str, Any]) -> Optional[HazardEvent]:
    geometry = raw.get("geometry") or []
    if not geometry or len(geometry[0].get("coordinates") or []) < 2:
        # Polygon-only or empty geometry has no single point to plot
        logger.debug("EONET event %s has no point geometry, skipping", raw.get("id"))
        return None

    point = geometry[0]
    coords = point["coordinates"]
    if isinstance(coords[0], list):
        logger.debug("EONET event %s has polygon geometry, skipping", raw.get("id"))
        return None

    categories = raw.get("categories") or []
    return HazardEvent(
        id=raw["id"],
        title=raw.get("title", ""),
        type=(categories[0].get("title") if categories else None) or "Unknown",
        lat=coords[1],
        lng=coords[0],
        date=point.get("date"),
    )
