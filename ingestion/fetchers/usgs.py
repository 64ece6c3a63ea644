"""
USGS earthquake summary feed fetcher.

Endpoint: https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/2.5_day.geojson
Docs: https://earthquake.usgs.gov/earthquakes/feed/v1.0/geojson.php

All magnitude 2.5+ earthquakes from the past day, as a GeoJSON
FeatureCollection. Magnitude is kept as ``val`` (it sizes the dot on the
globe) and the USGS place string as ``location``.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from config.settings import FEED_TIMEOUT_SECONDS, USGS_URL
from ingestion.fetchers.base import BaseFetcher, HazardEvent

logger = logging.getLogger(__name__)


def format_magnitude(mag) -> str:
    """4.7 → "4.7"; 5.0 → "5"."""
    if isinstance(mag, (int, float)):
        return f"{mag:g}"
    return str(mag)


class UsgsFetcher(BaseFetcher):
    """Fetches recent seismic events from the USGS summary feed."""

    provider_name = "usgs"

    def __init__(
        self,
        timeout: float = FEED_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        url: str = USGS_URL,
    ):
        super().__init__(timeout=timeout, client=client)
        self._url = url

    async def fetch_events(self) -> list[HazardEvent]:
        """Best effort: any failure is logged and yields []."""
        logger.info("Scanning lithosphere (USGS)...")
        try:
            async with self._client() as client:
                resp = await client.get(self._url)
                resp.raise_for_status()
                data = resp.json()

            events: list[HazardEvent] = []
            for feature in data["features"]:
                props = feature.get("properties") or {}
                coords = feature["geometry"]["coordinates"]
                mag = props.get("mag")
                events.append(HazardEvent(
                    id=feature["id"],
                    type="Seismic",
                    lat=coords[1],
                    lng=coords[0],
                    val=mag,
                    location=props.get("place"),
                    timestamp=props.get("time"),
                    title=f"M {format_magnitude(mag)} Earthquake",
                ))
        except httpx.HTTPStatusError as exc:
            logger.warning("USGS HTTP error: %s", exc.response.status_code)
            return []
        except Exception as exc:
            logger.warning("USGS uplink failed: %s", exc)
            return []

        logger.info("USGS: %d seismic events", len(events))
        return events
