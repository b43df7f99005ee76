from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from coral.colonies import Colony
from coral.colors import FATE_COLORS, GENUS_COLORS, fate_category, genus_color, size_color
from coral.records import Observation
from coral.stats import SizeBin, SurvivalPoint, YearPopulation

TRANSECT_LENGTH_M = 5.0
TRANSECT_WIDTH_CM = 100.0
TRANSECT_GAP_M = 0.3
TRANSECT_OFFSETS = {"T01": 0.0, "T02": TRANSECT_LENGTH_M + TRANSECT_GAP_M}

MAP_COLUMNS = [
    "colony_id",
    "transect",
    "genus",
    "map_x",
    "y",
    "size",
    "marker_size",
    "fate",
    "fate_category",
    "growth_rate",
    "selected",
]


def transect_map_frame(
    visible: Iterable[Tuple[Colony, Observation]],
    selected_ids: Iterable[int] = (),
) -> pd.DataFrame:
    selected = set(selected_ids)
    rows = []
    for colony, obs in visible:
        size = obs.geometric_mean_diam or 0.0
        rows.append(
            {
                "colony_id": colony.id,
                "transect": colony.transect,
                "genus": colony.genus,
                "map_x": colony.x + TRANSECT_OFFSETS.get(colony.transect, 0.0),
                "y": colony.y,
                "size": size,
                "marker_size": max(size, 1.0),
                "fate": obs.fate or "",
                "fate_category": fate_category(obs.fate),
                "growth_rate": obs.growth_rate,
                "selected": colony.id in selected,
            }
        )
    return pd.DataFrame(rows, columns=MAP_COLUMNS)


def _transect_shapes() -> List[dict]:
    shapes = []
    for offset in TRANSECT_OFFSETS.values():
        shapes.append(
            {
                "type": "rect",
                "x0": offset,
                "x1": offset + TRANSECT_LENGTH_M,
                "y0": 0,
                "y1": TRANSECT_WIDTH_CM,
                "line": {"color": "#666666", "width": 1, "dash": "dot"},
                "fillcolor": "rgba(0,0,0,0)",
            }
        )
    return shapes


def build_transect_map(df: pd.DataFrame, color_by: str = "genus"):
    if df.empty:
        fig = go.Figure()
    elif color_by == "size":
        low, high = float(df["size"].min()), float(df["size"].max())
        peak = float(df["marker_size"].max())
        fig = go.Figure(
            data=[
                go.Scatter(
                    x=df["map_x"],
                    y=df["y"],
                    mode="markers",
                    marker={
                        "size": df["marker_size"],
                        "sizemode": "area",
                        "sizeref": 2.0 * peak / (30.0**2),
                        "color": [size_color(s, low, high) for s in df["size"]],
                        "line": {"color": "#333333", "width": 0.5},
                    },
                    customdata=df[["colony_id", "genus", "size"]].values.tolist(),
                    hovertemplate=(
                        "Colony %{customdata[0]} (%{customdata[1]})<br>"
                        "Size: %{customdata[2]:.1f}<extra></extra>"
                    ),
                    showlegend=False,
                )
            ]
        )
    else:
        color_column = "fate_category" if color_by == "fate" else "genus"
        if color_by == "fate":
            color_map = {c: FATE_COLORS.get(c, FATE_COLORS["default"]) for c in df["fate_category"].unique()}
        else:
            color_map = {g: genus_color(g) for g in df["genus"].unique()}
        fig = px.scatter(
            df,
            x="map_x",
            y="y",
            size="marker_size",
            color=color_column,
            color_discrete_map=color_map,
            hover_data={
                "colony_id": True,
                "genus": True,
                "transect": True,
                "size": ":.1f",
                "fate": True,
                "growth_rate": ":.3f",
                "map_x": False,
                "marker_size": False,
            },
            custom_data=["colony_id"],
        )

    if not df.empty and df["selected"].any():
        picked = df[df["selected"]]
        fig.add_trace(
            go.Scatter(
                x=picked["map_x"],
                y=picked["y"],
                mode="markers",
                marker={"size": 22, "color": "rgba(0,0,0,0)", "line": {"color": "#ffffff", "width": 2}},
                hoverinfo="skip",
                showlegend=False,
            )
        )

    total_length = TRANSECT_LENGTH_M * 2 + TRANSECT_GAP_M
    fig.update_xaxes(range=[-0.1, total_length + 0.1], title="Distance along transect (m)")
    fig.update_yaxes(range=[-2, TRANSECT_WIDTH_CM + 2], title="Across transect (cm)")
    annotations = [
        {"x": offset + TRANSECT_LENGTH_M / 2, "y": TRANSECT_WIDTH_CM + 6, "text": name, "showarrow": False}
        for name, offset in TRANSECT_OFFSETS.items()
    ]
    fig.update_layout(shapes=_transect_shapes(), annotations=annotations, legend_title_text=color_by.title())
    return fig


def population_frame(population: Sequence[YearPopulation]) -> pd.DataFrame:
    rows = [
        {
            "year": entry.year,
            "genus": genus,
            "count": counts.count,
            "recruits": counts.recruits,
            "deaths": counts.deaths,
        }
        for entry in population
        for genus, counts in entry.by_genus.items()
    ]
    return pd.DataFrame(rows, columns=["year", "genus", "count", "recruits", "deaths"])


def build_population_chart(df: pd.DataFrame, metric: str = "count", current_year: Optional[int] = None):
    if df.empty:
        return go.Figure()
    fig = px.line(
        df,
        x="year",
        y=metric,
        color="genus",
        color_discrete_map=GENUS_COLORS,
        markers=True,
    )
    if current_year is not None:
        fig.add_vline(x=current_year, line_dash="dash", line_color="#888888")
    fig.update_xaxes(dtick=1, title="Year")
    fig.update_yaxes(title=metric.replace("_", " ").title())
    fig.update_layout(legend_title_text="Genus")
    return fig


def build_size_histogram(bins: Sequence[SizeBin], title: str = "Size"):
    if not bins:
        return go.Figure()
    fig = go.Figure(
        data=[
            go.Bar(
                x=[(b.x0 * b.x1) ** 0.5 for b in bins],
                y=[b.count for b in bins],
                width=[max(b.x1 - b.x0, 1e-9) for b in bins],
                customdata=[[b.x0, b.x1] for b in bins],
                hovertemplate="%{customdata[0]:.2f} – %{customdata[1]:.2f}<br>Count: %{y}<extra></extra>",
                marker={"color": "#5DD5F3", "line": {"color": "#333333", "width": 1}},
            )
        ]
    )
    fig.update_xaxes(type="log", title=title)
    fig.update_yaxes(title="Colonies")
    return fig


def build_survival_chart(curves: Dict[str, Sequence[SurvivalPoint]]):
    fig = go.Figure()
    for genus, curve in curves.items():
        fig.add_trace(
            go.Scatter(
                x=[p.time for p in curve],
                y=[p.survival for p in curve],
                mode="lines+markers",
                line={"shape": "hv", "color": genus_color(genus), "width": 2},
                name=genus,
            )
        )
    fig.update_xaxes(title="Years since recruitment")
    fig.update_yaxes(title="Survival probability", range=[0, 1.05])
    fig.update_layout(legend_title_text="Genus")
    return fig


def build_growth_histogram(rates: Sequence[float], nbins: int = 40):
    if not rates:
        return go.Figure()
    fig = px.histogram(pd.DataFrame({"growth_rate": list(rates)}), x="growth_rate", nbins=nbins)
    fig.add_vline(x=0, line_dash="dot", line_color="#888888")
    fig.update_xaxes(title="Growth rate ln(size[t] / size[t-1])")
    fig.update_yaxes(title="Observations")
    return fig
