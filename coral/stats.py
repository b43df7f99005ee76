from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from coral.colonies import Colony, size_of


@dataclass(frozen=True)
class GenusCounts:
    count: int
    recruits: int
    deaths: int


@dataclass(frozen=True)
class YearPopulation:
    year: int
    by_genus: Dict[str, GenusCounts]

    def total(self) -> int:
        return sum(c.count for c in self.by_genus.values())


@dataclass(frozen=True)
class SizeBin:
    x0: float
    x1: float
    count: int


@dataclass(frozen=True)
class SurvivalEvent:
    duration: int
    event: int  # 1 = death, 0 = censored
    genus: str


@dataclass(frozen=True)
class SurvivalPoint:
    time: float
    survival: float


def population_by_year(
    colonies: Sequence[Colony],
    years: Iterable[int],
    genera: Iterable[str],
) -> List[YearPopulation]:
    genera = list(genera)
    by_genus_colonies = {g: [c for c in colonies if c.genus == g] for g in genera}
    result: List[YearPopulation] = []
    for year in years:
        counts: Dict[str, GenusCounts] = {}
        for genus in genera:
            members = by_genus_colonies[genus]
            counts[genus] = GenusCounts(
                count=sum(1 for c in members if c.is_alive_in(year)),
                recruits=sum(1 for c in members if c.first_year == year),
                deaths=sum(1 for c in members if c.death_year == year),
            )
        result.append(YearPopulation(year=year, by_genus=counts))
    return result


def mean_size(colonies: Iterable[Colony], year: int, metric: str = "volume_proxy") -> float:
    sizes = []
    for colony in colonies:
        obs = colony.observation_for(year)
        if obs is None or not obs.is_alive:
            continue
        size = size_of(obs, metric)
        if size is not None:
            sizes.append(size)
    if not sizes:
        return 0.0
    return sum(sizes) / len(sizes)


def standard_deviation(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def size_histogram(values: Iterable[Optional[float]], bin_count: int = 20) -> List[SizeBin]:
    """Count values into logarithmically spaced bins between their min and max.

    Only strictly positive values are binned. Bins are half-open except the
    last, which also takes the maximum value so that every positive value is
    counted once.
    """
    positive = np.array(
        [v for v in values if v is not None and not math.isnan(v) and v > 0],
        dtype=float,
    )
    if positive.size == 0 or bin_count < 1:
        return []
    low, high = float(positive.min()), float(positive.max())
    if low == high:
        return [SizeBin(low, high, int(positive.size))]

    log_low = math.log10(low)
    step = (math.log10(high) - log_low) / bin_count
    edges = np.array([10 ** (log_low + i * step) for i in range(bin_count + 1)])
    edges[0], edges[-1] = low, high
    counts, _ = np.histogram(positive, bins=edges)
    return [
        SizeBin(float(edges[i]), float(edges[i + 1]), int(counts[i]))
        for i in range(bin_count)
    ]


def kaplan_meier(events: Iterable[SurvivalEvent]) -> List[SurvivalPoint]:
    """Product-limit survival curve, starting at (0, 1.0).

    The at-risk count starts at the number of events and only drops by events
    already processed, so every step has at least as many at risk as deaths.
    """
    ordered = sorted(events, key=lambda e: e.duration)
    at_risk = len(ordered)
    survival = 1.0
    curve = [SurvivalPoint(0, 1.0)]

    idx = 0
    while idx < len(ordered):
        time = ordered[idx].duration
        deaths = censored = 0
        while idx < len(ordered) and ordered[idx].duration == time:
            if ordered[idx].event == 1:
                deaths += 1
            else:
                censored += 1
            idx += 1
        if deaths > 0:
            survival *= (at_risk - deaths) / at_risk
            curve.append(SurvivalPoint(time, survival))
        at_risk -= deaths + censored
    return curve


def survival_events(colonies: Iterable[Colony], end_year: Optional[int] = None) -> List[SurvivalEvent]:
    colonies = list(colonies)
    if end_year is None:
        last_years = [c.last_year for c in colonies if c.last_year is not None]
        if not last_years:
            return []
        end_year = max(last_years)
    events = []
    for colony in colonies:
        if colony.recruitment_year is None:
            continue
        if colony.death_year is not None:
            events.append(SurvivalEvent(colony.death_year - colony.recruitment_year, 1, colony.genus))
        else:
            events.append(SurvivalEvent(end_year - colony.recruitment_year, 0, colony.genus))
    return events


def survival_by_genus(
    colonies: Sequence[Colony],
    genera: Iterable[str],
    end_year: Optional[int] = None,
) -> Dict[str, List[SurvivalPoint]]:
    events = survival_events(colonies, end_year)
    curves = {}
    for genus in genera:
        genus_events = [e for e in events if e.genus == genus]
        if genus_events:
            curves[genus] = kaplan_meier(genus_events)
    return curves


def growth_rates(colonies: Iterable[Colony], year: Optional[int] = None) -> List[float]:
    return [
        obs.growth_rate
        for colony in colonies
        for obs in colony.observations
        if obs.growth_rate is not None and (year is None or obs.year == year)
    ]


def alive_sizes(colonies: Iterable[Colony], year: int, metric: str) -> List[float]:
    sizes = []
    for colony in colonies:
        obs = colony.observation_for(year)
        if obs is not None and obs.is_alive:
            size = size_of(obs, metric)
            if size is not None:
                sizes.append(size)
    return sizes


def size_summary(
    colonies: Sequence[Colony],
    year: int,
    metric: str,
    genera: Iterable[str],
) -> Dict[str, Dict[str, float]]:
    summary = {}
    for genus in genera:
        sizes = alive_sizes((c for c in colonies if c.genus == genus), year, metric)
        if not sizes:
            continue
        summary[genus] = {
            "n": len(sizes),
            "mean": sum(sizes) / len(sizes),
            "median": float(np.median(sizes)),
            "sd": standard_deviation(sizes),
            "min": min(sizes),
            "max": max(sizes),
        }
    return summary


def live_count(colonies: Iterable[Colony], year: int) -> int:
    return sum(1 for c in colonies if c.is_alive_in(year))


def genus_live_counts(colonies: Iterable[Colony], year: int) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for colony in colonies:
        if colony.is_alive_in(year):
            counts[colony.genus] = counts.get(colony.genus, 0) + 1
    return counts
