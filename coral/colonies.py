from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional

import pandas as pd

from coral.records import Observation

logger = logging.getLogger(__name__)

SIZE_METRICS = ("geometric_mean_diam", "volume_proxy", "diam1")
DEFAULT_GROWTH_METRIC = "geometric_mean_diam"


@dataclass
class Colony:
    id: int
    transect: str
    genus: str
    x: float
    y: float
    z: float
    observations: List[Observation] = field(default_factory=list)
    recruitment_year: Optional[int] = None
    death_year: Optional[int] = None
    max_size: float = 0.0
    lifespan: int = 0

    @property
    def first_year(self) -> Optional[int]:
        return self.observations[0].year if self.observations else None

    @property
    def last_year(self) -> Optional[int]:
        return self.observations[-1].year if self.observations else None

    def observation_for(self, year: int) -> Optional[Observation]:
        for obs in self.observations:
            if obs.year == year:
                return obs
        return None

    def is_alive_in(self, year: int) -> bool:
        obs = self.observation_for(year)
        return bool(obs and obs.is_alive)


def size_of(observation: Observation, metric: str) -> Optional[float]:
    if metric not in SIZE_METRICS:
        raise ValueError(f"Unknown size metric: {metric}")
    return getattr(observation, metric)


def compute_growth_rates(
    observations: List[Observation],
    metric: str = DEFAULT_GROWTH_METRIC,
) -> List[Optional[float]]:
    rates: List[Optional[float]] = []
    for idx, obs in enumerate(observations):
        if idx == 0:
            rates.append(None)
            continue
        prev_size = size_of(observations[idx - 1], metric)
        size = size_of(obs, metric)
        if prev_size is None or size is None or prev_size <= 0 or size <= 0:
            rates.append(None)
        else:
            rates.append(math.log(size / prev_size))
    return rates


def _dedupe_years(colony_id: int, observations: List[Observation]) -> List[Observation]:
    seen = set()
    unique: List[Observation] = []
    for obs in observations:
        if obs.year in seen:
            logger.warning("Colony %s has more than one record for %s; keeping the first", colony_id, obs.year)
            continue
        seen.add(obs.year)
        unique.append(obs)
    return unique


def build_colony(
    colony_id: int,
    observations: Iterable[Observation],
    metric: str = DEFAULT_GROWTH_METRIC,
) -> Colony:
    ordered = _dedupe_years(colony_id, sorted(observations, key=lambda o: o.year))
    if not ordered:
        raise ValueError(f"Colony {colony_id} has no observations")
    rates = compute_growth_rates(ordered, metric)
    ordered = [replace(obs, growth_rate=rate) for obs, rate in zip(ordered, rates)]

    first = ordered[0]
    recruit_years = [o.year for o in ordered if o.is_recruit]
    recruitment_year = recruit_years[0] if recruit_years else first.year
    death_year = next((o.year for o in ordered if not o.is_alive), None)
    if death_year is not None:
        lifespan = death_year - recruitment_year
    else:
        lifespan = ordered[-1].year - recruitment_year

    sizes = [s for s in (size_of(o, metric) for o in ordered) if s is not None]
    return Colony(
        id=colony_id,
        transect=first.transect,
        genus=first.genus,
        x=first.x,
        y=first.y,
        z=first.z,
        observations=ordered,
        recruitment_year=recruitment_year,
        death_year=death_year,
        max_size=max(sizes) if sizes else 0.0,
        lifespan=lifespan,
    )


def aggregate_colonies(
    observations: Iterable[Observation],
    metric: str = DEFAULT_GROWTH_METRIC,
) -> List[Colony]:
    if metric not in SIZE_METRICS:
        raise ValueError(f"Unknown size metric: {metric}")
    grouped: Dict[int, List[Observation]] = {}
    for obs in observations:
        grouped.setdefault(obs.colony_id, []).append(obs)
    return [build_colony(colony_id, group, metric) for colony_id, group in grouped.items()]


def colonies_frame(colonies: Iterable[Colony]) -> pd.DataFrame:
    rows = [
        {
            "colony_id": c.id,
            "transect": c.transect,
            "genus": c.genus,
            "x": c.x,
            "y": c.y,
            "z": c.z,
            "n_observations": len(c.observations),
            "recruitment_year": c.recruitment_year,
            "death_year": c.death_year,
            "max_size": c.max_size,
            "lifespan": c.lifespan,
        }
        for c in colonies
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "colony_id",
            "transect",
            "genus",
            "x",
            "y",
            "z",
            "n_observations",
            "recruitment_year",
            "death_year",
            "max_size",
            "lifespan",
        ],
    )


OBSERVATION_COLUMNS = [
    "colony_id",
    "year",
    "transect",
    "genus",
    "x",
    "y",
    "z",
    "diam1",
    "diam2",
    "height",
    "geometric_mean_diam",
    "volume_proxy",
    "fate",
    "status",
    "is_alive",
    "is_recruit",
    "growth_rate",
]


def observations_frame(colonies: Iterable[Colony]) -> pd.DataFrame:
    rows = [
        {col: getattr(obs, col) for col in OBSERVATION_COLUMNS}
        for colony in colonies
        for obs in colony.observations
    ]
    return pd.DataFrame(rows, columns=OBSERVATION_COLUMNS)
