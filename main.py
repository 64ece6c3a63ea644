"""
World Data Refresh — Main Entry Point

Re-fetches the World Bank, NASA EONET, USGS and Natural Earth feeds and
regenerates the dashboard's static data module in one pass.

Usage:
    python main.py

Environment overrides (optional):
    WORLD_DATA_ARTIFACT   output path (default: src/data/mockData.js)
    WORLD_DATA_WB_DELAY   seconds between World Bank calls (default: 1.0)
    WORLD_DATA_LOG_LEVEL  logging level (default: INFO)
"""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import ARTIFACT_PATH, WB_REQUEST_DELAY_SECONDS
from ingestion.pipeline import RunSummary, WorldDataPipeline

logger = logging.getLogger("main")


async def run_refresh() -> RunSummary:
    pipeline = WorldDataPipeline(
        artifact_path=ARTIFACT_PATH,
        wb_delay=WB_REQUEST_DELAY_SECONDS,
    )
    return await pipeline.run()


def cli() -> None:
    logger.info("World data engine: initializing fetch...")
    summary = asyncio.run(run_refresh())
    logger.info(
        "Updated records for %d countries, target: %s",
        summary.updated, summary.artifact_path,
    )


if __name__ == "__main__":
    cli()
