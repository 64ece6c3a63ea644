"""
Generated data module — the single artifact the dashboard imports.

Layout (an ES module so the UI can ``import { countryData } from ...``):

    // AUTO-GENERATED BY WORLD DATA REFRESH
    // DO NOT EDIT MANUALLY
    // Generated at: 2026-01-01T00:00:00+00:00
    export const countryData = { ... };

    export const globalEvents = [ ... ];

    export const seismicData = [ ... ];

Each export body is plain JSON, so the previous run's output can be read
back without a JavaScript parser.
"""
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

COUNTRY_EXPORT = "countryData"
EVENTS_EXPORT = "globalEvents"
SEISMIC_EXPORT = "seismicData"

_EXPORT_RE = re.compile(r"export\s+const\s+(\w+)\s*=\s*")


class ArtifactError(ValueError):
    """The previous artifact exists but cannot be read back."""


@dataclass(frozen=True)
class ArtifactSnapshot:
    """Read-only view of the previous run's output, loaded once per run."""
    countries: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    global_events: tuple = ()
    seismic_data: tuple = ()

    @classmethod
    def empty(cls) -> "ArtifactSnapshot":
        return cls()


def parse_artifact(text: str) -> dict[str, Any]:
    """Return {export name: decoded JSON value} for every ``export const``."""
    decoder = json.JSONDecoder()
    exports: dict[str, Any] = {}
    pos = 0
    # Resume after each decoded body so text inside JSON strings is never matched
    while (match := _EXPORT_RE.search(text, pos)) is not None:
        try:
            value, pos = decoder.raw_decode(text, match.end())
        except json.JSONDecodeError as exc:
            raise ArtifactError(
                f"Export '{match.group(1)}' is not valid JSON: {exc}"
            ) from exc
        exports[match.group(1)] = value
    return exports


def load_artifact(path: Path) -> ArtifactSnapshot:
    """
    Load the previous artifact into an immutable snapshot.

    A missing file is normal on a first run and gives an empty snapshot.
    """
    if not path.exists():
        logger.warning("No previous artifact at %s, starting from empty", path)
        return ArtifactSnapshot.empty()

    exports = parse_artifact(path.read_text(encoding="utf-8"))
    countries = exports.get(COUNTRY_EXPORT, {})
    if not isinstance(countries, dict):
        raise ArtifactError(f"'{COUNTRY_EXPORT}' in {path} is not an object")

    snapshot = ArtifactSnapshot(
        countries=MappingProxyType(countries),
        global_events=tuple(exports.get(EVENTS_EXPORT) or ()),
        seismic_data=tuple(exports.get(SEISMIC_EXPORT) or ()),
    )
    logger.info(
        "Loaded previous artifact: %d countries from %s",
        len(snapshot.countries), path,
    )
    return snapshot


def _dump(value: Any) -> str:
    return json.dumps(value, indent=4, ensure_ascii=False)


def render_artifact(
    countries: Mapping[str, Any],
    global_events: list[dict[str, Any]],
    seismic_data: list[dict[str, Any]],
    generated_at: Optional[datetime] = None,
) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    return (
        "// AUTO-GENERATED BY WORLD DATA REFRESH\n"
        "// DO NOT EDIT MANUALLY\n"
        f"// Generated at: {generated_at.isoformat()}\n"
        f"export const {COUNTRY_EXPORT} = {_dump(dict(countries))};\n"
        "\n"
        f"export const {EVENTS_EXPORT} = {_dump(global_events)};\n"
        "\n"
        f"export const {SEISMIC_EXPORT} = {_dump(seismic_data)};\n"
    )


def write_artifact(path: Path, content: str) -> None:
    """Replace ``path`` in one step via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Wrote artifact: %s (%d bytes)", path, len(content.encode("utf-8")))
