import pandas as pd
import plotly.graph_objects as go
import pytest

from coral.colors import fate_category, genus_color, size_color
from coral.filters import ViewState, visible_colonies
from coral.stats import SizeBin, SurvivalPoint, population_by_year
from coral.viz import (
    MAP_COLUMNS,
    TRANSECT_OFFSETS,
    build_growth_histogram,
    build_population_chart,
    build_size_histogram,
    build_survival_chart,
    build_transect_map,
    population_frame,
    transect_map_frame,
)
from helpers import build_colonies, make_record


@pytest.fixture
def map_df():
    colonies = build_colonies(
        [
            make_record(coral_id=1, year=2014, transect="T01", genus="Poc", x=1.0, y=20.0),
            make_record(coral_id=2, year=2014, transect="T02", genus="Por", x=2.0, y=40.0, fate="Shrinkage"),
            make_record(coral_id=3, year=2014, transect="T02", genus="Acr", x=0.5, y=10.0, diam1="UK"),
        ]
    )
    state = ViewState.for_dataset(year_range=(2013, 2016))
    state.set_current_year(2014)
    return transect_map_frame(visible_colonies(colonies, state), selected_ids=[2])


def test_transect_map_frame(map_df):
    assert list(map_df.columns) == MAP_COLUMNS
    rows = map_df.set_index("colony_id")
    assert rows.loc[1, "map_x"] == pytest.approx(1.0)
    assert rows.loc[2, "map_x"] == pytest.approx(2.0 + TRANSECT_OFFSETS["T02"])
    assert rows.loc[3, "size"] == 0.0
    assert rows.loc[3, "marker_size"] == 1.0
    assert rows.loc[2, "fate_category"] == "Shrinkage"
    assert rows["selected"].tolist() == [False, True, False]


@pytest.mark.parametrize("color_by", ["genus", "fate", "size"])
def test_transect_map_modes(map_df, color_by):
    fig = build_transect_map(map_df, color_by)
    assert isinstance(fig, go.Figure)
    assert len(fig.layout.shapes) == len(TRANSECT_OFFSETS)
    # Last trace rings the selected colony.
    ring = fig.data[-1]
    assert list(ring.x) == [pytest.approx(2.0 + TRANSECT_OFFSETS["T02"])]


def test_transect_map_genus_traces_carry_colony_ids(map_df):
    fig = build_transect_map(map_df, "genus")
    names = {trace.name for trace in fig.data if trace.name}
    assert names == {"Poc", "Por", "Acr"}
    ids = [row[0] for trace in fig.data if trace.customdata is not None for row in trace.customdata]
    assert sorted(ids) == [1, 2, 3]


def test_empty_map(map_df):
    fig = build_transect_map(map_df.iloc[0:0])
    assert len(fig.data) == 0
    assert len(fig.layout.shapes) == len(TRANSECT_OFFSETS)


def test_population_chart(por_population):
    df = population_frame(population_by_year(por_population, [2019, 2020, 2021], ["Por", "Poc"]))
    assert len(df) == 6
    fig = build_population_chart(df, "count", current_year=2020)
    assert {trace.name for trace in fig.data} == {"Por", "Poc"}
    assert build_population_chart(df.iloc[0:0]).data == ()


def test_size_histogram_figure():
    bins = [SizeBin(1.0, 10.0, 3), SizeBin(10.0, 100.0, 1)]
    fig = build_size_histogram(bins, "Diameter (cm)")
    assert list(fig.data[0].y) == [3, 1]
    assert fig.layout.xaxis.type == "log"
    assert build_size_histogram([]).data == ()


def test_survival_chart_one_trace_per_genus():
    curves = {
        "Poc": [SurvivalPoint(0, 1.0), SurvivalPoint(2, 0.5)],
        "Por": [SurvivalPoint(0, 1.0)],
    }
    fig = build_survival_chart(curves)
    assert [trace.name for trace in fig.data] == ["Poc", "Por"]
    assert fig.data[0].line.shape == "hv"


def test_growth_histogram():
    assert build_growth_histogram([]).data == ()
    fig = build_growth_histogram([0.1, -0.2, 0.3], nbins=5)
    assert len(fig.data) == 1


def test_colors():
    assert genus_color("Poc") == "#FF5A45"
    assert genus_color("Zzz") == "#7F8C8D"
    assert fate_category("Growth/Fission") == "Growth"
    assert fate_category(None) == "Missing Data"
    assert fate_category("Tagged") == "Other"
    assert size_color(0, 0, 10) == "rgb(0, 0, 255)"
    assert size_color(10, 0, 10) == "rgb(255, 0, 0)"
    assert size_color(99, 5, 5) == "rgb(0, 0, 255)"


def test_genus_colors_drive_map_and_survival_lines(map_df):
    fig = build_transect_map(map_df, "genus")
    colors = {trace.name: trace.marker.color for trace in fig.data if trace.name}
    assert colors == {"Poc": genus_color("Poc"), "Por": genus_color("Por"), "Acr": genus_color("Acr")}

    survival = build_survival_chart({"Mil": [SurvivalPoint(0, 1.0)], "Zzz": [SurvivalPoint(0, 1.0)]})
    assert survival.data[0].line.color == "#B8621B"
    assert survival.data[1].line.color == genus_color("Zzz")


def test_fate_mode_colors_unlisted_fates_with_default():
    df = pd.DataFrame(
        [
            {"colony_id": 1, "transect": "T01", "genus": "Poc", "map_x": 1.0, "y": 5.0, "size": 3.0,
             "marker_size": 3.0, "fate": "Tagged", "fate_category": "Other", "growth_rate": None,
             "selected": False},
        ],
        columns=MAP_COLUMNS,
    )
    fig = build_transect_map(df, "fate")
    assert fig.data[0].marker.color == "#7F8C8D"
