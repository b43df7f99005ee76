from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests
from dotenv import load_dotenv

from coral.colonies import DEFAULT_GROWTH_METRIC, Colony, aggregate_colonies
from coral.filters import year_bounds
from coral.records import GENERA, TRANSECTS, ParseResult, Skipped, normalize_genus, observations_from, parse_records

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = "data/coral_webapp.json"
ENV_PATH = Path(__file__).resolve().parents[1] / "config" / "app.env"


class DatasetLoadError(RuntimeError):
    pass


@dataclass
class Dataset:
    name: str
    source: str
    year_range: Tuple[int, int]
    genera: Tuple[str, ...]
    transects: Tuple[str, ...]
    colonies: List[Colony]
    n_records: int
    skipped: List[Skipped] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def load_settings() -> Dict[str, Any]:
    load_dotenv(dotenv_path=ENV_PATH)
    timeout = _get_env("CORAL_HTTP_TIMEOUT_S", "30")
    interval = _get_env("CORAL_ANIMATION_INTERVAL_S", "1.0")
    try:
        timeout_s = float(timeout)
    except ValueError:
        raise ValueError(f"CORAL_HTTP_TIMEOUT_S must be a number, got {timeout!r}")
    try:
        interval_s = float(interval)
    except ValueError:
        raise ValueError(f"CORAL_ANIMATION_INTERVAL_S must be a number, got {interval!r}")
    return {
        "data_path": _get_env("CORAL_DATA_PATH", DEFAULT_DATA_PATH),
        "http_timeout_s": timeout_s,
        "animation_interval_s": interval_s,
    }


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def fetch_document(source: str, timeout_s: float = 30) -> Dict[str, Any]:
    logger.info("Loading coral data from %s", source)
    try:
        if _is_url(source):
            resp = requests.get(source, timeout=timeout_s)
            resp.raise_for_status()
            document = resp.json()
        else:
            with open(source, encoding="utf-8") as handle:
                document = json.load(handle)
    except requests.RequestException as exc:
        raise DatasetLoadError(f"Failed to load {source}: {exc}") from exc
    except OSError as exc:
        raise DatasetLoadError(f"Failed to read {source}: {exc}") from exc
    except ValueError as exc:
        raise DatasetLoadError(f"{source} is not valid JSON: {exc}") from exc
    if not isinstance(document, dict) or not isinstance(document.get("records"), list):
        raise DatasetLoadError(f"{source} has no 'records' list")
    return document


def _metadata_codes(values: Any, fallback: Tuple[str, ...], normalize=None) -> Tuple[str, ...]:
    if not isinstance(values, list) or not values:
        return fallback
    codes = []
    for value in values:
        code = normalize(value) if normalize else (str(value) if value is not None else None)
        if code and code not in codes:
            codes.append(code)
    return tuple(codes) or fallback


def build_dataset(
    document: Dict[str, Any],
    source: str = "",
    metric: str = DEFAULT_GROWTH_METRIC,
) -> Dataset:
    metadata = document.get("metadata") or {}
    records = document["records"]
    results: List[ParseResult] = parse_records(records)
    colonies = aggregate_colonies(observations_from(results), metric)

    years = metadata.get("years")
    if isinstance(years, list) and len(years) == 2 and all(isinstance(y, (int, float)) for y in years):
        year_range = (int(years[0]), int(years[1]))
    else:
        year_range = year_bounds(colonies)

    notes = [note for r in results for note in getattr(r, "notes", ())]
    skipped = [r for r in results if isinstance(r, Skipped)]
    logger.info(
        "Loaded %d colonies from %d records (%d skipped)", len(colonies), len(records), len(skipped)
    )
    return Dataset(
        name=str(metadata.get("name") or "Coral transects"),
        source=source,
        year_range=year_range,
        genera=_metadata_codes(metadata.get("genera"), GENERA, normalize_genus),
        transects=_metadata_codes(metadata.get("transects"), TRANSECTS),
        colonies=colonies,
        n_records=len(records),
        skipped=skipped,
        notes=notes,
        metadata=metadata,
    )


def load_dataset(
    source: Optional[str] = None,
    timeout_s: Optional[float] = None,
    metric: str = DEFAULT_GROWTH_METRIC,
) -> Dataset:
    if source is None or timeout_s is None:
        settings = load_settings()
        source = source or settings["data_path"]
        timeout_s = timeout_s if timeout_s is not None else settings["http_timeout_s"]
    document = fetch_document(source, timeout_s)
    return build_dataset(document, source, metric)
