"""
World Bank Open Data API fetcher.

Endpoint: https://api.worldbank.org/v2/country/all/indicator/{indicator}
Docs: https://datahelpdesk.worldbank.org/knowledgebase/articles/889392

One request per indicator covers every country: ``mrnev=1`` asks for the
most recent non-empty value per country and a large ``per_page`` keeps the
whole result on a single page. Six indicators feed the dashboard:
GDP, population, real GDP growth and the agriculture / industry / services
value-added shares.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from config.settings import (
    INDICATORS,
    WB_BASE_URL,
    WB_PER_PAGE,
    WB_TIMEOUT_SECONDS,
    IndicatorDefinition,
)
from ingestion.fetchers.base import BaseFetcher, IndicatorMap
from ingestion.rate_limit import RateLimitedQueue

logger = logging.getLogger(__name__)


class WorldBankFetcher(BaseFetcher):
    """Fetches latest-value indicator snapshots from the World Bank API."""

    provider_name = "world_bank"

    def __init__(
        self,
        timeout: float = WB_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = WB_BASE_URL,
    ):
        super().__init__(timeout=timeout, client=client)
        self._base_url = base_url

    async def fetch_latest(self, indicator: str) -> IndicatorMap:
        """
        Fetch the most recent non-empty value of ``indicator`` for every country.

        Returns {iso3: value}. Never raises: timeouts, HTTP errors and
        non-JSON bodies (the API serves HTML error pages under load) all
        degrade to an empty mapping so the run continues with zero defaults.
        """
        try:
            payload = await asyncio.wait_for(
                self._get_json(indicator), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "World Bank: %s timed out after %.0fs, using empty values",
                indicator, self._timeout,
            )
            return {}
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "World Bank HTTP error for %s: %s, using empty values",
                indicator, exc.response.status_code,
            )
            return {}
        except ValueError as exc:
            logger.warning(
                "World Bank returned a non-JSON body for %s: %s, using empty values",
                indicator, exc,
            )
            return {}
        except Exception as exc:
            logger.warning(
                "World Bank fetch failed for %s: %s, using empty values",
                indicator, exc,
            )
            return {}

        values = parse_indicator_payload(payload)
        if not values:
            logger.warning("No data returned for %s", indicator)
        else:
            logger.info("World Bank: %s → %d countries", indicator, len(values))
        return values

    async def fetch_all(
        self,
        queue: RateLimitedQueue,
        indicators: Optional[list[IndicatorDefinition]] = None,
    ) -> dict[str, IndicatorMap]:
        """
        Fetch each indicator through ``queue``, strictly one after another.

        Returns {indicator name: IndicatorMap}; a failed indicator maps to {}.
        """
        results: dict[str, IndicatorMap] = {}
        if indicators is None:
            indicators = INDICATORS
        for ind in indicators:
            results[ind.name] = await queue.submit(
                lambda code=ind.wb_indicator: self.fetch_latest(code)
            )
        return results

    async def _get_json(self, indicator: str) -> Any:
        async with self._client() as client:
            resp = await client.get(
                f"{self._base_url}/country/all/indicator/{indicator}",
                params={
                    "format": "json",
                    "per_page": WB_PER_PAGE,
                    "mrnev": 1,
                },
            )
            resp.raise_for_status()
            return resp.json()


def parse_indicator_payload(payload: Any) -> IndicatorMap:
    """
    Reduce a ``[metadata, records]`` response to {iso3: value}.

    Records with a null value or without an ISO-3 code are skipped. An error
    payload (``[{"message": [...]}]``) or any other shape yields {}.
    """
    if not isinstance(payload, list) or len(payload) < 2:
        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            message = payload[0].get("message")
            if message:
                logger.warning("World Bank API message: %s", message)
        return {}

    records = payload[1]
    if not isinstance(records, list):
        return {}

    values: IndicatorMap = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        iso3 = record.get("countryiso3code")
        value = record.get("value")
        if not iso3 or value is None:
            continue
        try:
            values[iso3] = float(value)
        except (TypeError, ValueError):
            continue
    return values
