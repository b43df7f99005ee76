from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

GENERA = ("Poc", "Por", "Acr", "Mil")
TRANSECTS = ("T01", "T02")
DEFAULT_GENUS = "Poc"

# Field codes used by the survey sheets.
NOT_APPLICABLE_CODES = {"Na", "na", "NA"}
UNKNOWN_CODE = "UK"
DEAD_CODE = "D"
MISSING_CODES = NOT_APPLICABLE_CODES | {UNKNOWN_CODE, DEAD_CODE, ""}

GENUS_LOOKUP = {
    "poc": "Poc",
    "por": "Por",
    "acr": "Acr",
    "mil": "Mil",
    "pocillopora": "Poc",
    "porites": "Por",
    "acropora": "Acr",
    "millepora": "Mil",
}


@dataclass(frozen=True)
class Observation:
    colony_id: int
    year: int
    transect: str
    genus: str
    x: float
    y: float
    z: float
    diam1: Optional[float]
    diam2: Optional[float]
    height: Optional[float]
    geometric_mean_diam: Optional[float]
    volume_proxy: Optional[float]
    fate: Optional[str]
    status: Optional[str]
    is_alive: bool
    is_recruit: bool
    growth_rate: Optional[float] = None


@dataclass(frozen=True)
class Parsed:
    observation: Observation
    notes: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Skipped:
    reason: str
    raw: Any = None


ParseResult = Union[Parsed, Skipped]


def parse_measurement(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in MISSING_CODES:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return number


def normalize_genus(code: Any) -> Optional[str]:
    if not isinstance(code, str):
        return None
    return GENUS_LOOKUP.get(code.strip().lower())


def geometric_mean_diameter(diam1: Optional[float], diam2: Optional[float]) -> Optional[float]:
    if diam1 is None or diam2 is None or diam1 < 0 or diam2 < 0:
        return None
    return math.sqrt(diam1 * diam2)


def volume_proxy(
    diam1: Optional[float],
    diam2: Optional[float],
    height: Optional[float],
) -> Optional[float]:
    """Ellipsoid approximation of colony volume."""
    if diam1 is None or diam2 is None or height is None:
        return None
    if diam1 < 0 or diam2 < 0 or height < 0:
        return None
    return diam1 * diam2 * height / 6


def _parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def _parse_coordinate(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return None
    return text


def _is_dead_code(value: Any) -> bool:
    return isinstance(value, str) and value.strip() == DEAD_CODE


def parse_record(raw: Any) -> ParseResult:
    if not isinstance(raw, Mapping):
        return Skipped("record is not an object", raw)

    colony_id = _parse_int(raw.get("coral_id", raw.get("colony_id")))
    if colony_id is None:
        return Skipped("missing or non-integer colony id", raw)
    year = _parse_int(raw.get("year"))
    if year is None:
        return Skipped("missing or non-integer year", raw)

    notes: List[str] = []
    genus_code = raw.get("genus")
    genus = normalize_genus(genus_code) or normalize_genus(raw.get("genus_full"))
    if genus is None:
        genus = DEFAULT_GENUS
        notes.append(f"unknown genus {genus_code!r} defaulted to {DEFAULT_GENUS}")

    transect = _clean_text(raw.get("transect")) or ""
    if transect not in TRANSECTS:
        notes.append(f"unrecognized transect {transect!r}")

    raw_d1, raw_d2, raw_h = raw.get("diam1"), raw.get("diam2"), raw.get("height")
    diam1 = parse_measurement(raw_d1)
    diam2 = parse_measurement(raw_d2)
    height = parse_measurement(raw_h)

    status = _clean_text(raw.get("status"))
    fate = _clean_text(raw.get("fate"))
    died = raw.get("died") is True
    is_alive = not (
        died
        or status == DEAD_CODE
        or any(_is_dead_code(v) for v in (raw_d1, raw_d2, raw_h))
    )
    is_recruit = raw.get("is_recruit") is True or bool(fate and "recruit" in fate.lower())

    observation = Observation(
        colony_id=colony_id,
        year=year,
        transect=transect,
        genus=genus,
        x=_parse_coordinate(raw.get("x")),
        y=_parse_coordinate(raw.get("y")),
        z=_parse_coordinate(raw.get("z")),
        diam1=diam1,
        diam2=diam2,
        height=height,
        geometric_mean_diam=geometric_mean_diameter(diam1, diam2),
        volume_proxy=volume_proxy(diam1, diam2, height),
        fate=fate,
        status=status,
        is_alive=is_alive,
        is_recruit=is_recruit,
    )
    return Parsed(observation, tuple(notes))


def parse_records(raws: Iterable[Any]) -> List[ParseResult]:
    results = [parse_record(raw) for raw in raws]
    skipped = sum(1 for r in results if isinstance(r, Skipped))
    noted = sum(1 for r in results if isinstance(r, Parsed) and r.notes)
    if skipped or noted:
        logger.warning("Parsed %d records: %d skipped, %d with notes", len(results), skipped, noted)
    return results


def observations_from(results: Iterable[ParseResult]) -> List[Observation]:
    return [r.observation for r in results if isinstance(r, Parsed)]


def skip_reasons(results: Iterable[ParseResult]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for result in results:
        if isinstance(result, Skipped):
            counts[result.reason] = counts.get(result.reason, 0) + 1
    return counts
