from __future__ import annotations
import asyncio
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from ingestion.fetchers.natural_earth import GeoReferenceError
from ingestion.pipeline import WorldDataPipeline
from production.artifact import load_artifact, parse_artifact, render_artifact, write_artifact

GENERATED_AT = datetime(2026, 10, 17, 6, 0, tzinfo=timezone.utc)

GEOJSON = {
    "type": "FeatureCollection",
    "features": [
        {"properties": {"NAME": name, "ISO_A2": iso2, "ISO_A3": iso3},
         "geometry": {"type": "Polygon", "coordinates": []}}
        for name, iso2, iso3 in [
            ("France", "-99", "-99"),
            ("Norway", "-99", "-99"),
            ("Atlantis", "AT", "ATL"),
            ("Nowhere", "NW", "NWH"),
            ("Germany", "DE", "DEU"),
        ]
    ],
}

# indicator code → {iso3: value}
WB_VALUES = {
    "NY.GDP.MKTP.CD": {"FRA": 3.0e12, "NOR": 4.8e11, "DEU": 4.5e12},
    "SP.POP.TOTL": {"FRA": 6.8e7, "NOR": 5.5e6, "DEU": 8.4e7},
    "NY.GDP.MKTP.KD.ZG": {"FRA": 2.5, "NOR": 0.5, "DEU": -0.3},
    "NV.AGR.TOTL.ZS": {"FRA": 1.6, "NOR": 1.9, "DEU": 0.8},
    "NV.IND.TOTL.ZS": {"FRA": 17.4, "NOR": 42.0, "DEU": 27.0},
    "NV.SRV.TOTL.ZS": {"FRA": 70.3, "NOR": 48.2, "DEU": 62.9},
}

EONET = {"events": [{
    "id": "EONET_7001",
    "title": "Tropical Storm Kiko",
    "categories": [{"id": "severeStorms", "title": "Severe Storms"}],
    "geometry": [{"date": "2026-10-16T18:00:00Z", "type": "Point",
                  "coordinates": [-140.3, 15.2]}],
}]}

USGS = {"type": "FeatureCollection", "features": [{
    "id": "ak0262abcd",
    "properties": {"mag": 3.1, "place": "42 km W of Anchor Point, Alaska",
                   "time": 1760680000000},
    "geometry": {"type": "Point", "coordinates": [-152.6, 59.8, 60.1]},
}]}


def _make_handler(failing_indicator: str | None = None, geo_status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "raw.githubusercontent.com":
            if geo_status != 200:
                return httpx.Response(geo_status)
            return httpx.Response(200, json=GEOJSON)
        if host == "api.worldbank.org":
            code = request.url.path.rsplit("/", 1)[-1]
            if code == failing_indicator:
                return httpx.Response(
                    200, text="<html>Request rejected</html>",
                    headers={"content-type": "text/html"},
                )
            records = [
                {"countryiso3code": iso3, "value": value}
                for iso3, value in WB_VALUES[code].items()
            ]
            return httpx.Response(200, json=[{"page": 1, "pages": 1}, records])
        if host == "eonet.gsfc.nasa.gov":
            return httpx.Response(200, json=EONET)
        if host == "earthquake.usgs.gov":
            return httpx.Response(200, json=USGS)
        return httpx.Response(404)
    return handler


def _run_pipeline(path: Path, handler):
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            pipeline = WorldDataPipeline(artifact_path=path, wb_delay=0, client=client)
            return await pipeline.run(generated_at=GENERATED_AT)
    return asyncio.run(_go())


def _seed_previous(path: Path) -> None:
    previous = {
        "Atlantis": {"name": "Atlantis", "code": "AT", "gdp": "$2.0B",
                     "population": "0.1M", "growth": "+1.0%", "segments": [],
                     "activeUsers": "1.0K", "risk": "Medium"},
        "Gone": {"name": "Gone", "code": "GN"},
        "Germany": {"name": "Germany", "code": "DE",
                    "demographics": {"age": [{"name": "65+", "value": 22}]},
                    "dataYear": 2022},
    }
    write_artifact(path, render_artifact(previous, [], [], generated_at=GENERATED_AT))


def test_full_run_writes_joined_artifact(tmp_path):
    path = tmp_path / "mockData.js"
    _seed_previous(path)

    summary = _run_pipeline(path, _make_handler())

    assert summary.updated == 3
    assert summary.carried_forward == 1
    assert summary.missing == 1
    assert summary.failed_indicators == []
    assert summary.global_events == 1
    assert summary.seismic_events == 1

    exports = parse_artifact(path.read_text(encoding="utf-8"))
    countries = exports["countryData"]

    # Feed order, corrected codes, Gone dropped, Nowhere missing
    assert list(countries) == ["France", "Norway", "Atlantis", "Germany"]
    assert countries["France"]["code"] == "FR"
    assert countries["Norway"]["code"] == "NO"

    assert countries["France"]["gdp"] == "$3.0T"
    assert countries["France"]["risk"] == "Low"
    assert countries["Norway"]["gdp"] == "$480.0B"
    assert countries["Norway"]["risk"] == "Medium"
    assert countries["Norway"]["activeUsers"] == "55.0K"
    assert countries["Germany"]["risk"] == "High"
    assert countries["Germany"]["growth"] == "-0.3%"
    assert countries["Germany"]["dataYear"] == 2022
    assert countries["Germany"]["demographics"]["age"][0]["value"] == 22
    assert countries["Atlantis"]["gdp"] == "$2.0B"

    assert exports["globalEvents"][0]["type"] == "Severe Storms"
    assert exports["seismicData"][0]["title"] == "M 3.1 Earthquake"
    assert exports["seismicData"][0]["val"] == 3.1


def test_first_run_without_previous_artifact(tmp_path):
    path = tmp_path / "src" / "data" / "mockData.js"

    summary = _run_pipeline(path, _make_handler())

    assert path.exists()
    assert summary.countries == 3
    assert summary.missing == 2
    countries = load_artifact(path).countries
    assert "demographics" not in countries["Germany"]


def test_one_failed_indicator_still_yields_all_countries(tmp_path):
    path = tmp_path / "mockData.js"

    summary = _run_pipeline(path, _make_handler(failing_indicator="NV.AGR.TOTL.ZS"))

    assert summary.failed_indicators == ["agriculture"]
    assert summary.updated == 3
    countries = load_artifact(path).countries
    assert countries["Norway"]["segments"] == [
        {"name": "Services", "value": 48},
        {"name": "Industry", "value": 42},
        {"name": "Agriculture", "value": 0},
    ]


def test_failed_indicator_warning_names_world_bank_code(tmp_path, caplog):
    caplog.set_level("WARNING", logger="ingestion.pipeline")

    _run_pipeline(tmp_path / "mockData.js", _make_handler(failing_indicator="SP.POP.TOTL"))

    assert "population (SP.POP.TOTL)" in caplog.text


def test_geo_reference_failure_aborts_without_writing(tmp_path):
    path = tmp_path / "mockData.js"

    with pytest.raises(GeoReferenceError):
        _run_pipeline(path, _make_handler(geo_status=503))

    assert not path.exists()


def test_rerun_with_same_responses_is_byte_identical(tmp_path):
    path = tmp_path / "mockData.js"
    _seed_previous(path)

    _run_pipeline(path, _make_handler())
    first = path.read_text(encoding="utf-8")
    _run_pipeline(path, _make_handler())
    second = path.read_text(encoding="utf-8")

    assert first == second
