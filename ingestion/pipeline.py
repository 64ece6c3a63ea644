"""
World data refresh pipeline — one batch run from feeds to artifact.

Order of work:
  1. Load the previous artifact (immutable snapshot)
  2. Fetch the geo-reference feed; failure here aborts the run
  3. Concurrently:
       - the six World Bank indicators, one at a time through a
         rate-limited queue with a fixed delay between calls
       - NASA EONET open events
       - USGS past-day earthquakes
  4. Aggregate (pure, synchronous) once every fetch has settled
  5. Render and write the artifact in a single replace
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx

from config.settings import (
    ARTIFACT_PATH,
    COUNTRY_CODE_CORRECTIONS,
    INDICATORS,
    get_indicator,
    WB_CONCURRENCY,
    WB_REQUEST_DELAY_SECONDS,
    WB_TIMEOUT_SECONDS,
)
from ingestion.fetchers.eonet import EonetFetcher
from ingestion.fetchers.natural_earth import GeoReferenceLoader
from ingestion.fetchers.usgs import UsgsFetcher
from ingestion.fetchers.world_bank import WorldBankFetcher
from ingestion.rate_limit import RateLimitedQueue
from processing.aggregator import aggregate
from production.artifact import load_artifact, render_artifact, write_artifact

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """What one run produced, for logging and tests."""
    artifact_path: Path
    countries: int
    updated: int
    carried_forward: int
    missing: int
    failed_indicators: list[str]
    global_events: int
    seismic_events: int
    elapsed_seconds: float


class WorldDataPipeline:
    """
    Refreshes the dashboard's static data module.

    Usage:
        pipeline = WorldDataPipeline()
        summary = await pipeline.run()

        # Tests inject a client backed by httpx.MockTransport and no delay:
        pipeline = WorldDataPipeline(artifact_path=tmp, wb_delay=0, client=client)
    """

    def __init__(
        self,
        artifact_path: Optional[Path] = None,
        wb_delay: float = WB_REQUEST_DELAY_SECONDS,
        wb_timeout: float = WB_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._artifact_path = artifact_path or ARTIFACT_PATH
        self._wb_delay = wb_delay
        self._geo = GeoReferenceLoader(client=client)
        self._wb = WorldBankFetcher(timeout=wb_timeout, client=client)
        self._eonet = EonetFetcher(client=client)
        self._usgs = UsgsFetcher(client=client)

    async def run(self, generated_at: Optional[datetime] = None) -> RunSummary:
        logger.info("=" * 70)
        logger.info("WORLD DATA REFRESH START")
        logger.info(
            "Indicators: %d (sequential, %.1fs apart)  Artifact: %s",
            len(INDICATORS), self._wb_delay, self._artifact_path,
        )
        logger.info("=" * 70)

        start_ts = datetime.now(timezone.utc)

        previous = load_artifact(self._artifact_path)
        features = await self._geo.fetch_features()

        # Queue is built per run so its primitives bind to this event loop
        queue = RateLimitedQueue(concurrency=WB_CONCURRENCY, delay=self._wb_delay)
        indicators, global_events, seismic_events = await asyncio.gather(
            self._wb.fetch_all(queue),
            self._eonet.fetch_events(),
            self._usgs.fetch_events(),
        )
        failed = [name for name, values in indicators.items() if not values]
        logger.info(
            "Global report: %d NASA events & %d seismic events",
            len(global_events), len(seismic_events),
        )

        result = aggregate(
            features, indicators, previous.countries, COUNTRY_CODE_CORRECTIONS
        )

        content = render_artifact(
            result.countries,
            [ev.to_dict() for ev in global_events],
            [ev.to_dict() for ev in seismic_events],
            generated_at=generated_at,
        )
        write_artifact(self._artifact_path, content)

        elapsed = (datetime.now(timezone.utc) - start_ts).total_seconds()
        summary = RunSummary(
            artifact_path=self._artifact_path,
            countries=len(result.countries),
            updated=len(result.updated),
            carried_forward=len(result.carried_forward),
            missing=len(result.missing),
            failed_indicators=failed,
            global_events=len(global_events),
            seismic_events=len(seismic_events),
            elapsed_seconds=elapsed,
        )

        logger.info("=" * 70)
        logger.info(
            "REFRESH COMPLETE: %d countries (%d updated, %d carried forward, "
            "%d missing) in %.1f seconds",
            summary.countries, summary.updated, summary.carried_forward,
            summary.missing, elapsed,
        )
        if failed:
            logger.warning(
                "Indicators defaulted to 0: %s",
                ", ".join(
                    f"{name} ({get_indicator(name).wb_indicator})" for name in failed
                ),
            )
        logger.info(
            "Events: %d | Quakes: %d", summary.global_events, summary.seismic_events
        )
        logger.info("Output: %s", self._artifact_path)
        logger.info("=" * 70)

        return summary
