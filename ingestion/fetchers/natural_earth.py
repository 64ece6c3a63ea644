"""
Natural Earth country-boundary loader (geo-reference feed).

Source: ne_110m_admin_0_countries.geojson as mirrored by the react-globe.gl
examples. The feature list defines which countries the job iterates over
and in what order; its ISO_A3 code is the join key for World Bank values.

There is no fallback for this feed. If it cannot be fetched or decoded the
run stops before anything is written.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from config.settings import GEOJSON_URL
from ingestion.fetchers.base import BaseFetcher, GeoFeature

logger = logging.getLogger(__name__)


class GeoReferenceError(RuntimeError):
    """The geo-reference feed could not be loaded."""


class GeoReferenceLoader(BaseFetcher):
    """Fetches the country polygon feed."""

    provider_name = "natural_earth"

    def __init__(
        self,
        url: str = GEOJSON_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self._url = url

    async def fetch_features(self) -> list[GeoFeature]:
        """Return every country feature in feed order."""
        try:
            async with self._client() as client:
                resp = await client.get(self._url)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise GeoReferenceError(
                f"Geo-reference feed returned HTTP {exc.response.status_code}"
            ) from exc
        except ValueError as exc:
            raise GeoReferenceError(f"Geo-reference feed is not valid JSON: {exc}") from exc
        except httpx.HTTPError as exc:
            raise GeoReferenceError(f"Geo-reference feed unreachable: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("features"), list):
            raise GeoReferenceError("Geo-reference feed has no feature list")

        features: list[GeoFeature] = []
        for feature in data["features"]:
            props = feature.get("properties") or {}
            features.append(GeoFeature(
                name=props.get("NAME", ""),
                iso2=props.get("ISO_A2", ""),
                iso3=props.get("ISO_A3", ""),
                geometry=feature.get("geometry"),
            ))

        logger.info("Natural Earth: %d country features", len(features))
        return features
