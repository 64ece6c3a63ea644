"""
Country aggregation — joins the geo-reference feed with the indicator maps.

Pure, synchronous transforms. Nothing here touches the network or the
filesystem; the pipeline hands in fully settled fetch results plus the prior
artifact snapshot and gets back the country-record mapping.

Per feature, in feed order:
  1. Resolve iso2/iso3, applying the country-code correction table
  2. Look up the six indicators by iso3 (missing → 0)
  3. GDP or population non-zero → build a fresh record, keeping the prior
     record's demographics / dataYear
  4. Otherwise carry the prior record forward unchanged, or drop the
     country and count it as missing
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional

import polars as pl

from config.settings import COUNTRY_CODE_CORRECTIONS, INDICATORS
from ingestion.fetchers.base import GeoFeature, IndicatorMap

logger = logging.getLogger(__name__)

Risk = Literal["Low", "Medium", "High"]

# Record fields never computed here, only copied from the prior artifact
PRESERVED_FIELDS = ("demographics", "dataYear")

_SEGMENT_ORDER = ("Services", "Industry", "Agriculture")


@dataclass
class AggregationResult:
    """Output of one aggregation pass."""
    countries: dict[str, dict[str, Any]] = field(default_factory=dict)
    updated: list[str] = field(default_factory=list)
    carried_forward: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


# ─── Code Resolution ─────────────────────────────────────────────────────────

def resolve_codes(
    name: str,
    iso2: str,
    iso3: str,
    corrections: Mapping[str, Mapping[str, str]] = COUNTRY_CODE_CORRECTIONS,
) -> tuple[str, str]:
    """Return (iso2, iso3), overriding the feed's codes for corrected names."""
    fix = corrections.get(name)
    if fix:
        return fix.get("iso2", iso2), fix.get("iso3", iso3)
    return iso2, iso3


# ─── Display Formatting ──────────────────────────────────────────────────────

def format_gdp(gdp: float) -> str:
    """2.5e12 → "$2.5T"; anything up to a trillion is shown in billions."""
    if gdp > 1e12:
        return f"${gdp / 1e12:.1f}T"
    return f"${gdp / 1e9:.1f}B"


def format_population(population: float) -> str:
    """1.41e9 → "1.41B"; 3.3e7 → "33.0M"."""
    if population > 1e9:
        return f"{population / 1e9:.2f}B"
    return f"{population / 1e6:.1f}M"


def format_growth(growth: float) -> str:
    sign = "+" if growth > 0 else ""
    return f"{sign}{growth:.1f}%"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_segments(
    services: float,
    industry: float,
    agriculture: float,
) -> list[dict[str, Any]]:
    """
    Sector shares of GDP as whole percentages, largest first.

    Always three entries. The shares come straight from separate World Bank
    series, so they need not add up to 100. Ties keep
    Services / Industry / Agriculture order.
    """
    raw = dict(zip(_SEGMENT_ORDER, (services, industry, agriculture)))
    segments = [
        {"name": name, "value": _round_half_up(raw[name])}
        for name in _SEGMENT_ORDER
    ]
    return sorted(segments, key=lambda s: s["value"], reverse=True)


def classify_risk(growth: float, gdp: float) -> Risk:
    """
    Three-bucket heuristic on real GDP growth.

    Checks run in a fixed order and a later match overrides an earlier one:
    Medium by default, High on contraction, Low for a large economy growing
    faster than 2%. Growth of exactly 0 stays Medium.
    """
    risk: Risk = "Medium"
    if growth < 0:
        risk = "High"
    if growth > 2.0 and gdp > 1e11:
        risk = "Low"
    return risk


def estimate_active_users(population: float) -> str:
    """Synthetic user count: 1% of population, with a K/M suffix."""
    users = population * 0.01
    # Suffix is chosen from the rounded figure, so 999.6 reads "1.0K", not "1000"
    if round(users) < 1000:
        return f"{users:.0f}"
    if round(users / 1e3, 1) < 1000:
        return f"{users / 1e3:.1f}K"
    return f"{users / 1e6:.1f}M"


# ─── Join ────────────────────────────────────────────────────────────────────

def indicator_frame(
    indicators: Mapping[str, IndicatorMap],
    names: Optional[list[str]] = None,
) -> pl.DataFrame:
    """
    One row per iso3 seen in any indicator, one Float64 column per indicator.

    Indicators that failed (empty maps) still get a column, all zeros.
    """
    if names is None:
        names = [ind.name for ind in INDICATORS]
    codes = sorted({iso3 for name in names for iso3 in indicators.get(name, {})})
    columns: dict[str, list] = {"iso3": codes}
    for name in names:
        values = indicators.get(name, {})
        columns[name] = [values.get(code) for code in codes]

    logger.debug(
        "Indicator coverage: %s",
        ", ".join(f"{name}={len(indicators.get(name, {}))}" for name in names),
    )
    schema = {"iso3": pl.Utf8, **{name: pl.Float64 for name in names}}
    return pl.DataFrame(columns, schema=schema).fill_null(0.0)


def join_features(
    features: list[GeoFeature],
    indicators: Mapping[str, IndicatorMap],
    corrections: Mapping[str, Mapping[str, str]] = COUNTRY_CODE_CORRECTIONS,
) -> pl.DataFrame:
    """
    Left-join corrected geo features onto the indicator frame by iso3.

    Row order follows the feed; unmatched indicators are 0.
    """
    names = [ind.name for ind in INDICATORS]
    rows = []
    for feat in features:
        iso2, iso3 = resolve_codes(feat.name, feat.iso2, feat.iso3, corrections)
        rows.append({"name": feat.name, "iso2": iso2, "iso3": iso3})

    geo_df = pl.DataFrame(
        rows, schema={"name": pl.Utf8, "iso2": pl.Utf8, "iso3": pl.Utf8}
    ).with_row_index("feed_order")

    values_df = indicator_frame(indicators, names)
    return (
        geo_df
        .join(values_df, on="iso3", how="left")
        .with_columns([pl.col(name).fill_null(0.0) for name in names])
        .sort("feed_order")
    )


# ─── Records ─────────────────────────────────────────────────────────────────

def build_country_record(
    name: str,
    code: str,
    values: Mapping[str, float],
    prior: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Fresh display record from indicator values (all keys default to 0)."""
    gdp = values.get("gdp", 0.0)
    population = values.get("population", 0.0)
    growth = values.get("growth", 0.0)

    record: dict[str, Any] = {
        "name": name,
        "code": code,
        "gdp": format_gdp(gdp),
        "population": format_population(population),
        "growth": format_growth(growth),
        "segments": compute_segments(
            values.get("services", 0.0),
            values.get("industry", 0.0),
            values.get("agriculture", 0.0),
        ),
        "activeUsers": estimate_active_users(population),
        "risk": classify_risk(growth, gdp),
    }
    if prior:
        for key in PRESERVED_FIELDS:
            if prior.get(key):
                record[key] = prior[key]
    return record


def aggregate(
    features: list[GeoFeature],
    indicators: Mapping[str, IndicatorMap],
    previous: Mapping[str, Mapping[str, Any]],
    corrections: Mapping[str, Mapping[str, str]] = COUNTRY_CODE_CORRECTIONS,
) -> AggregationResult:
    """
    Build the country-record mapping for one run.

    Args:
        features: Geo-reference features in feed order (defines the key set)
        indicators: {indicator name: {iso3: value}}; failed indicators are {}
        previous: Country records from the prior artifact, keyed by name
        corrections: name → {iso2, iso3} overrides applied before lookup

    Countries in ``previous`` but absent from ``features`` are dropped.
    """
    result = AggregationResult()
    joined = join_features(features, indicators, corrections)

    for row in joined.iter_rows(named=True):
        name = row["name"]
        prior = previous.get(name)

        if row["gdp"] or row["population"]:
            result.countries[name] = build_country_record(
                name, row["iso2"], row, prior
            )
            result.updated.append(name)
            logger.debug("Processing %s (%s)... OK", name, row["iso3"])
        elif prior is not None:
            result.countries[name] = dict(prior)
            result.carried_forward.append(name)
            logger.debug(
                "Processing %s (%s)... no new data, preserving existing record",
                name, row["iso3"],
            )
        else:
            result.missing.append(name)
            logger.debug("Processing %s (%s)... missing", name, row["iso3"])

    logger.info(
        "Aggregated %d countries: %d updated, %d carried forward, %d missing",
        len(result.countries), len(result.updated),
        len(result.carried_forward), len(result.missing),
    )
    return result
