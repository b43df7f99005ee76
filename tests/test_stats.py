import math

import pytest

from coral.stats import (
    SurvivalEvent,
    SurvivalPoint,
    genus_live_counts,
    growth_rates,
    kaplan_meier,
    live_count,
    mean_size,
    population_by_year,
    size_histogram,
    size_summary,
    standard_deviation,
    survival_by_genus,
    survival_events,
)
from helpers import build_colonies, make_record


def test_population_counts_one_genus_and_year(por_population):
    population = population_by_year(por_population, [2020], ["Por"])
    assert len(population) == 1
    assert population[0].year == 2020
    assert population[0].by_genus["Por"].count == 3


def test_population_recruits_and_deaths(por_population):
    population = {p.year: p for p in population_by_year(por_population, [2019, 2020, 2021], ["Por", "Poc"])}
    assert population[2020].by_genus["Por"].recruits == 3
    assert population[2020].by_genus["Por"].deaths == 1
    assert population[2019].by_genus["Por"].recruits == 1
    assert population[2021].by_genus["Por"].count == 1
    assert population[2020].by_genus["Poc"].count == 1
    assert population[2020].total() == 4


def test_mean_size_alive_only():
    colonies = build_colonies(
        [
            make_record(coral_id=1, year=2014, diam1=10, diam2=10),
            make_record(coral_id=2, year=2014, diam1=20, diam2=20),
            make_record(coral_id=3, year=2014, diam1=50, diam2=50, died=True),
            make_record(coral_id=4, year=2014, diam1="UK", diam2="UK"),
        ]
    )
    assert mean_size(colonies, 2014, "geometric_mean_diam") == pytest.approx(15.0)
    assert mean_size(colonies, 2010, "geometric_mean_diam") == 0.0
    assert mean_size([], 2014) == 0.0


def test_standard_deviation():
    assert standard_deviation([]) == 0.0
    assert standard_deviation([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)


def test_size_histogram_counts_positive_values():
    values = [0.5, 1, 2, 3, 10, 10, 40, 99.9, 100, 0, -4, None]
    bins = size_histogram(values, bin_count=5)
    assert len(bins) == 5
    assert sum(b.count for b in bins) == 9
    edges = [bins[0].x0] + [b.x1 for b in bins]
    assert all(a < b for a, b in zip(edges, edges[1:]))
    assert edges[0] == pytest.approx(0.5)
    assert edges[-1] == pytest.approx(100)


def test_size_histogram_log_spacing():
    bins = size_histogram([1, 10, 100, 1000], bin_count=3)
    assert [b.x0 for b in bins] == pytest.approx([1, 10, 100])
    assert [b.count for b in bins] == [1, 1, 2]


def test_size_histogram_edge_cases():
    assert size_histogram([]) == []
    assert size_histogram([0, -1]) == []
    single = size_histogram([5, 5, 5], bin_count=10)
    assert len(single) == 1
    assert single[0].count == 3


def test_kaplan_meier_textbook_example():
    events = [
        SurvivalEvent(1, 1, "Poc"),
        SurvivalEvent(2, 0, "Poc"),
        SurvivalEvent(3, 1, "Poc"),
        SurvivalEvent(3, 1, "Poc"),
        SurvivalEvent(4, 0, "Poc"),
        SurvivalEvent(5, 1, "Poc"),
    ]
    curve = kaplan_meier(events)
    assert curve[0] == SurvivalPoint(0, 1.0)
    assert [p.time for p in curve] == [0, 1, 3, 5]
    assert curve[1].survival == pytest.approx(5 / 6)
    assert curve[2].survival == pytest.approx(5 / 6 * 2 / 4)
    assert curve[3].survival == pytest.approx(0.0)


def test_kaplan_meier_non_increasing():
    events = [SurvivalEvent(d % 7, int(d % 3 == 0), "Por") for d in range(40)]
    curve = kaplan_meier(events)
    survivals = [p.survival for p in curve]
    assert survivals[0] == 1.0
    assert all(a >= b for a, b in zip(survivals, survivals[1:]))
    assert survivals[-1] == min(survivals)


def test_kaplan_meier_censor_only_has_no_steps():
    assert kaplan_meier([SurvivalEvent(2, 0, "Acr"), SurvivalEvent(3, 0, "Acr")]) == [SurvivalPoint(0, 1.0)]
    assert kaplan_meier([]) == [SurvivalPoint(0, 1.0)]


def test_kaplan_meier_does_not_mutate_input():
    events = [SurvivalEvent(3, 1, "Mil"), SurvivalEvent(1, 0, "Mil")]
    kaplan_meier(events)
    assert [e.duration for e in events] == [3, 1]


def test_survival_events_from_colonies():
    colonies = build_colonies(
        [
            make_record(coral_id=1, year=2013, genus="Poc"),
            make_record(coral_id=1, year=2015, genus="Poc", died=True),
            make_record(coral_id=2, year=2014, genus="Por"),
            make_record(coral_id=2, year=2016, genus="Por"),
        ]
    )
    events = sorted(survival_events(colonies), key=lambda e: e.genus)
    assert events == [SurvivalEvent(2, 1, "Poc"), SurvivalEvent(2, 0, "Por")]
    censored = [e for e in survival_events(colonies, end_year=2020) if e.event == 0]
    assert censored == [SurvivalEvent(6, 0, "Por")]

    curves = survival_by_genus(colonies, ["Poc", "Por", "Acr"])
    assert set(curves) == {"Poc", "Por"}
    assert curves["Poc"][-1] == SurvivalPoint(2, 0.0)


def test_growth_rates_and_counts():
    colonies = build_colonies(
        [
            make_record(coral_id=1, year=2013, diam1=10, diam2=10),
            make_record(coral_id=1, year=2014, diam1=20, diam2=20),
            make_record(coral_id=2, year=2014, genus="Mil"),
            make_record(coral_id=3, year=2014, genus="Mil", died=True),
        ]
    )
    assert growth_rates(colonies) == [pytest.approx(math.log(2))]
    assert growth_rates(colonies, year=2013) == []
    assert live_count(colonies, 2014) == 2
    assert genus_live_counts(colonies, 2014) == {"Poc": 1, "Mil": 1}


def test_size_summary():
    colonies = build_colonies(
        [
            make_record(coral_id=1, year=2014, diam1=10, diam2=10),
            make_record(coral_id=2, year=2014, diam1=30, diam2=30),
            make_record(coral_id=3, year=2014, genus="Acr", diam1="UK"),
        ]
    )
    summary = size_summary(colonies, 2014, "geometric_mean_diam", ["Poc", "Acr"])
    assert set(summary) == {"Poc"}
    assert summary["Poc"]["mean"] == pytest.approx(20.0)
    assert summary["Poc"]["median"] == pytest.approx(20.0)
    assert summary["Poc"]["sd"] == pytest.approx(10.0)
    assert summary["Poc"]["n"] == 2


def test_kaplan_meier_all_deaths_at_once_reach_zero():
    events = [SurvivalEvent(1, 0, "Por"), SurvivalEvent(4, 1, "Por"), SurvivalEvent(4, 1, "Por")]
    curve = kaplan_meier(events)
    assert curve == [SurvivalPoint(0, 1.0), SurvivalPoint(4, 0.0)]
