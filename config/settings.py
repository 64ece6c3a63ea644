"""
World Data Refresh — Configuration

Maps the dashboard's six economic indicators and three event/geo feeds to
their public endpoints, and fixes the policy knobs (timeouts, rate-limit
delay, artifact location) used by the batch job.
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging
import os
import sys

LOG_LEVEL = os.environ.get("WORLD_DATA_LOG_LEVEL", "INFO").upper()

# Progress and warnings go to stdout alongside the run summary
logging.basicConfig(
    level=LOG_LEVEL,
    stream=sys.stdout,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

# ─── Storage Paths ───────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent

# The UI imports this module as a static, read-only data source
ARTIFACT_PATH = Path(
    os.environ.get(
        "WORLD_DATA_ARTIFACT",
        str(PROJECT_ROOT / "src" / "data" / "mockData.js"),
    )
)


# ─── Feed Endpoints ──────────────────────────────────────────────────────────

GEOJSON_URL = (
    "https://raw.githubusercontent.com/vasturiano/react-globe.gl/master/"
    "example/datasets/ne_110m_admin_0_countries.geojson"
)
WB_BASE_URL = "https://api.worldbank.org/v2"
EONET_URL = "https://eonet.gsfc.nasa.gov/api/v3/events"
USGS_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/2.5_day.geojson"


# ─── Request Policy ──────────────────────────────────────────────────────────

# One page large enough for every country + aggregate in a single response
WB_PER_PAGE = 20000

# Hard ceiling per indicator call; the request is cancelled past this
WB_TIMEOUT_SECONDS = 30.0

# The World Bank API throttles bursts; indicators go out one at a time
WB_CONCURRENCY = 1
WB_REQUEST_DELAY_SECONDS = float(os.environ.get("WORLD_DATA_WB_DELAY", "1.0"))

FEED_TIMEOUT_SECONDS = 30.0

EONET_STATUS = "open"
EONET_EVENT_LIMIT = 20


# ─── Indicators ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class IndicatorDefinition:
    """One World Bank series tracked per country."""
    name: str
    wb_indicator: str
    unit: str
    description: str = ""


# Requested in this order, one at a time
INDICATORS: list[IndicatorDefinition] = [
    IndicatorDefinition(
        name="gdp", wb_indicator="NY.GDP.MKTP.CD",
        unit="usd", description="GDP (current US$)",
    ),
    IndicatorDefinition(
        name="population", wb_indicator="SP.POP.TOTL",
        unit="people", description="Population, total",
    ),
    IndicatorDefinition(
        name="growth", wb_indicator="NY.GDP.MKTP.KD.ZG",
        unit="percent_yoy", description="GDP growth (annual %)",
    ),
    IndicatorDefinition(
        name="agriculture", wb_indicator="NV.AGR.TOTL.ZS",
        unit="percent_gdp", description="Agriculture, value added (% of GDP)",
    ),
    IndicatorDefinition(
        name="industry", wb_indicator="NV.IND.TOTL.ZS",
        unit="percent_gdp", description="Industry, value added (% of GDP)",
    ),
    IndicatorDefinition(
        name="services", wb_indicator="NV.SRV.TOTL.ZS",
        unit="percent_gdp", description="Services, value added (% of GDP)",
    ),
]


def get_indicator(name: str) -> Optional[IndicatorDefinition]:
    for ind in INDICATORS:
        if ind.name == name:
            return ind
    return None


# ─── Country Code Corrections ────────────────────────────────────────────────

# Natural Earth 110m reports ISO codes of "-99" for these two countries
COUNTRY_CODE_CORRECTIONS: dict[str, dict[str, str]] = {
    "France": {"iso2": "FR", "iso3": "FRA"},
    "Norway": {"iso2": "NO", "iso3": "NOR"},
}
