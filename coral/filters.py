from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from coral.colonies import DEFAULT_GROWTH_METRIC, Colony, size_of
from coral.records import GENERA, TRANSECTS, Observation

FALLBACK_YEAR_RANGE = (2013, 2024)
COLOR_MODES = ("genus", "fate", "size")


@dataclass
class ViewState:
    """Current selection for one running dashboard.

    Setters store what they are given; keeping min <= max is up to the caller.
    """

    all_genera: Tuple[str, ...] = GENERA
    all_transects: Tuple[str, ...] = TRANSECTS
    full_year_range: Tuple[int, int] = FALLBACK_YEAR_RANGE
    selected_genera: Set[str] = field(default_factory=set)
    selected_transects: Set[str] = field(default_factory=set)
    year_range: Tuple[int, int] = FALLBACK_YEAR_RANGE
    current_year: int = FALLBACK_YEAR_RANGE[0]
    min_size: float = 0.0
    max_size: float = math.inf
    selected_ids: List[int] = field(default_factory=list)
    size_metric: str = DEFAULT_GROWTH_METRIC
    color_by: str = "genus"

    def __post_init__(self) -> None:
        if not self.selected_genera:
            self.selected_genera = set(self.all_genera)
        if not self.selected_transects:
            self.selected_transects = set(self.all_transects)

    @classmethod
    def for_dataset(
        cls,
        genera: Iterable[str] = GENERA,
        transects: Iterable[str] = TRANSECTS,
        year_range: Tuple[int, int] = FALLBACK_YEAR_RANGE,
    ) -> "ViewState":
        lo, hi = int(year_range[0]), int(year_range[1])
        return cls(
            all_genera=tuple(genera),
            all_transects=tuple(transects),
            full_year_range=(lo, hi),
            year_range=(lo, hi),
            current_year=lo,
        )

    def toggle_genus(self, genus: str) -> None:
        if genus in self.selected_genera:
            self.selected_genera.discard(genus)
        else:
            self.selected_genera.add(genus)

    def toggle_transect(self, transect: str) -> None:
        if transect in self.selected_transects:
            self.selected_transects.discard(transect)
        else:
            self.selected_transects.add(transect)

    def set_year_range(self, min_year: int, max_year: int) -> None:
        self.year_range = (min_year, max_year)
        if self.current_year < min_year:
            self.current_year = min_year
        elif self.current_year > max_year:
            self.current_year = max_year

    def set_current_year(self, year: int) -> None:
        self.current_year = year

    def set_size_bounds(self, min_size: float, max_size: float) -> None:
        self.min_size = min_size
        self.max_size = max_size

    def select_colonies(self, ids: Iterable[int]) -> None:
        self.selected_ids = list(ids)

    def filter_signature(self) -> Tuple:
        return (
            self.current_year,
            frozenset(self.selected_genera),
            frozenset(self.selected_transects),
            self.min_size,
            self.max_size,
            self.size_metric,
        )

    def drop_stale_selection(self, previous: Optional[Tuple]) -> bool:
        """Clear the selection if the year or a filter changed since ``previous``.

        Returns True when a non-empty selection was dropped.
        """
        if previous is None or previous == self.filter_signature() or not self.selected_ids:
            return False
        self.selected_ids = []
        return True

    def reset(self) -> None:
        self.selected_genera = set(self.all_genera)
        self.selected_transects = set(self.all_transects)
        self.year_range = self.full_year_range
        self.current_year = self.full_year_range[0]
        self.min_size = 0.0
        self.max_size = math.inf
        self.selected_ids = []


def year_bounds(colonies: Iterable[Colony]) -> Tuple[int, int]:
    years = [obs.year for colony in colonies for obs in colony.observations]
    if not years:
        return FALLBACK_YEAR_RANGE
    return min(years), max(years)


def year_array(min_year: int, max_year: int) -> List[int]:
    return list(range(min_year, max_year + 1))


def available_years(colonies: Iterable[Colony]) -> List[int]:
    return sorted({obs.year for colony in colonies for obs in colony.observations})


def colony_size(colony: Colony, metric: str) -> float:
    """Largest present value of ``metric`` over the colony's observations, 0 when none."""
    sizes = [s for s in (size_of(o, metric) for o in colony.observations) if s is not None]
    return max(sizes) if sizes else 0.0


def size_ceiling(colonies: Iterable[Colony], metric: str, floor: float = 1.0) -> float:
    return max([colony_size(c, metric) for c in colonies] + [floor])


def _size_in_bounds(size: Optional[float], state: ViewState) -> bool:
    value = size or 0.0
    return state.min_size <= value <= state.max_size


def apply_filters(colonies: Iterable[Colony], state: ViewState) -> List[Colony]:
    # Any observation in the year range qualifies, dead ones included.
    lo, hi = state.year_range
    kept = []
    for colony in colonies:
        if colony.genus not in state.selected_genera:
            continue
        if colony.transect not in state.selected_transects:
            continue
        if not any(lo <= o.year <= hi for o in colony.observations):
            continue
        if not _size_in_bounds(colony_size(colony, state.size_metric), state):
            continue
        kept.append(colony)
    return kept


def visible_colonies(
    colonies: Iterable[Colony],
    state: ViewState,
) -> List[Tuple[Colony, Observation]]:
    visible = []
    for colony in colonies:
        obs = colony.observation_for(state.current_year)
        if obs is None or not obs.is_alive:
            continue
        if colony.genus not in state.selected_genera:
            continue
        if colony.transect not in state.selected_transects:
            continue
        if not _size_in_bounds(size_of(obs, state.size_metric), state):
            continue
        visible.append((colony, obs))
    return visible


def selected_colonies(colonies: Sequence[Colony], state: ViewState) -> List[Colony]:
    wanted = set(state.selected_ids)
    return [c for c in colonies if c.id in wanted]
