import logging
import sys
import time
from pathlib import Path

import pandas as pd
import streamlit as st

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from config.app_metadata import (  # noqa: E402
    ANIMATION_SPEEDS,
    APP_SUBTITLE,
    APP_TITLE,
    COLOR_BY_LABELS,
    GENUS_NAMES,
    HISTOGRAM_BINS,
    POPULATION_METRIC_LABELS,
    SIZE_METRIC_LABELS,
)
from coral.animation import AnimationDriver  # noqa: E402
from coral.colonies import observations_frame  # noqa: E402
from coral.filters import (  # noqa: E402
    ViewState,
    apply_filters,
    selected_colonies,
    size_ceiling,
    visible_colonies,
    year_array,
)
from coral.loader import Dataset, DatasetLoadError, load_dataset, load_settings  # noqa: E402
from coral.stats import (  # noqa: E402
    alive_sizes,
    genus_live_counts,
    growth_rates,
    live_count,
    mean_size,
    population_by_year,
    size_histogram,
    size_summary,
    survival_by_genus,
)
from coral.viz import (  # noqa: E402
    build_growth_histogram,
    build_population_chart,
    build_size_histogram,
    build_survival_chart,
    build_transect_map,
    population_frame,
    transect_map_frame,
)
from views.about import render_about  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title=APP_TITLE, layout="wide")


@st.cache_data(show_spinner=False)
def _load_dataset(source: str, timeout_s: float) -> Dataset:
    return load_dataset(source, timeout_s)


settings = load_settings()
try:
    with st.spinner("Loading coral demographic data..."):
        dataset = _load_dataset(settings["data_path"], settings["http_timeout_s"])
except DatasetLoadError as exc:
    st.error(f"Data loading error: {exc}")
    st.caption(
        "Set CORAL_DATA_PATH (in config/app.env or the environment) to the webapp JSON "
        "produced by the export pipeline."
    )
    st.stop()

colonies = dataset.colonies

if st.session_state.get("dataset_source") != dataset.source:
    previous = st.session_state.get("animation")
    if previous is not None:
        previous.cancel()
    view_state = ViewState.for_dataset(dataset.genera, dataset.transects, dataset.year_range)
    st.session_state["view_state"] = view_state
    st.session_state["animation"] = AnimationDriver(view_state, settings["animation_interval_s"])
    st.session_state["dataset_source"] = dataset.source

state: ViewState = st.session_state["view_state"]
driver: AnimationDriver = st.session_state["animation"]
min_year, max_year = state.full_year_range
size_limit = size_ceiling(colonies, state.size_metric)


def _widget_keys() -> list[str]:
    return [key for key in st.session_state.keys() if str(key).startswith("filters_")]


def _reset_view() -> None:
    driver.cancel()
    state.reset()
    for key in _widget_keys():
        del st.session_state[key]


def _on_year_range() -> None:
    lo, hi = st.session_state["filters_year_range"]
    state.set_year_range(lo, hi)


def _on_size_bounds() -> None:
    lo, hi = st.session_state["filters_size_bounds"]
    upper = float("inf") if hi >= size_limit else hi
    state.set_size_bounds(lo, upper)


def _on_current_year() -> None:
    state.set_current_year(st.session_state["filters_current_year"])


def _on_speed() -> None:
    driver.set_speed(st.session_state["filters_speed"])


def _on_metric() -> None:
    state.size_metric = st.session_state["filters_size_metric"]
    state.set_size_bounds(0.0, float("inf"))


def _on_color_by() -> None:
    state.color_by = st.session_state["filters_color_by"]


# A year or filter change since the last run drops the map selection.
if state.drop_stale_selection(st.session_state.get("filter_signature")):
    st.session_state["map_reset_key"] = st.session_state.get("map_reset_key", 0) + 1
st.session_state["filter_signature"] = state.filter_signature()

# Widgets are keyed; push the view state into their keys before they are drawn.
st.session_state["filters_current_year"] = min(max(state.current_year, min_year), max_year)
st.session_state["filters_year_range"] = state.year_range
st.session_state["filters_size_bounds"] = (
    float(state.min_size),
    float(min(state.max_size, size_limit)),
)

with st.sidebar:
    st.subheader("Filters")
    st.caption("Coral genera")
    for genus in state.all_genera:
        st.checkbox(
            GENUS_NAMES.get(genus, genus),
            value=genus in state.selected_genera,
            key=f"filters_genus_{genus}",
            on_change=state.toggle_genus,
            args=(genus,),
        )
    st.caption("Transects")
    for transect in state.all_transects:
        st.checkbox(
            transect,
            value=transect in state.selected_transects,
            key=f"filters_transect_{transect}",
            on_change=state.toggle_transect,
            args=(transect,),
        )
    st.slider(
        "Year range",
        min_value=min_year,
        max_value=max_year,
        key="filters_year_range",
        on_change=_on_year_range,
    )
    st.selectbox(
        "Size metric",
        options=list(SIZE_METRIC_LABELS),
        index=list(SIZE_METRIC_LABELS).index(state.size_metric),
        format_func=SIZE_METRIC_LABELS.get,
        key="filters_size_metric",
        on_change=_on_metric,
    )
    st.slider(
        "Size bounds",
        min_value=0.0,
        max_value=float(size_limit),
        key="filters_size_bounds",
        on_change=_on_size_bounds,
    )
    st.selectbox(
        "Color map by",
        options=list(COLOR_BY_LABELS),
        index=list(COLOR_BY_LABELS).index(state.color_by),
        format_func=COLOR_BY_LABELS.get,
        key="filters_color_by",
        on_change=_on_color_by,
    )
    st.button("Reset filters", on_click=_reset_view)

st.title(APP_TITLE)
st.caption(
    f"{APP_SUBTITLE} • {dataset.year_range[0]}–{dataset.year_range[1]} • "
    f"{len(colonies):,} colonies"
)

badge_year, badge_live, badge_total = st.columns(3)
badge_year.metric("Year", state.current_year)
badge_live.metric("Live colonies", live_count(colonies, state.current_year))
badge_total.metric("Total colonies", len(colonies))

play_col, slider_col, speed_col = st.columns([1, 6, 2])
with play_col:
    st.button("Pause" if driver.playing else "Play", on_click=driver.toggle, use_container_width=True)
with slider_col:
    st.slider(
        "Year",
        min_value=min_year,
        max_value=max_year,
        key="filters_current_year",
        on_change=_on_current_year,
        label_visibility="collapsed",
    )
with speed_col:
    st.selectbox(
        "Speed",
        options=ANIMATION_SPEEDS,
        index=ANIMATION_SPEEDS.index(driver.speed) if driver.speed in ANIMATION_SPEEDS else 1,
        format_func=lambda s: f"{s:g}x",
        key="filters_speed",
        on_change=_on_speed,
        label_visibility="collapsed",
    )

active_tab = st.radio(
    "View",
    ["Transect Map", "Population", "Size & Survival", "About"],
    horizontal=True,
    key="active_tab",
)

if active_tab == "Transect Map":
    visible = visible_colonies(colonies, state)
    map_df = transect_map_frame(visible, state.selected_ids)
    st.caption(f"{len(map_df)} colonies shown for {state.current_year}")
    map_fig = build_transect_map(map_df, color_by=state.color_by)
    map_fig.update_layout(margin={"r": 0, "t": 30, "l": 0, "b": 0}, height=520)
    map_event = st.plotly_chart(
        map_fig,
        use_container_width=True,
        on_select="rerun",
        selection_mode="points",
        key=f"transect_map_{st.session_state.get('map_reset_key', 0)}",
    )
    if map_event and map_event.selection and map_event.selection.points:
        point = map_event.selection.points[0]
        custom = point.get("customdata") or []
        if custom:
            state.select_colonies([int(custom[0])])

    chosen = selected_colonies(colonies, state)
    if chosen:
        colony = chosen[0]
        st.subheader(f"Colony {colony.id}: {GENUS_NAMES.get(colony.genus, colony.genus)}, {colony.transect}")
        detail_cols = st.columns(4)
        detail_cols[0].metric("Recruited", colony.recruitment_year)
        detail_cols[1].metric("Died", colony.death_year or "alive")
        detail_cols[2].metric("Lifespan (yr)", colony.lifespan)
        detail_cols[3].metric("Max size", f"{colony.max_size:.1f}")
        st.dataframe(observations_frame([colony]), use_container_width=True, hide_index=True)
        if st.button("Clear selection"):
            state.select_colonies([])
            st.session_state["map_reset_key"] = st.session_state.get("map_reset_key", 0) + 1
            st.rerun()
    else:
        st.caption("Select a colony on the map to see its history.")

    counts = genus_live_counts(colonies, state.current_year)
    total = sum(counts.values())
    st.subheader("Genus distribution")
    for genus in state.all_genera:
        count = counts.get(genus, 0)
        st.progress(count / total if total else 0.0, text=f"{GENUS_NAMES.get(genus, genus)}: {count}")

elif active_tab == "Population":
    lo, hi = state.year_range
    filtered = apply_filters(colonies, state)
    genera = [g for g in state.all_genera if g in state.selected_genera]
    population_metric = st.selectbox(
        "Population metric",
        options=list(POPULATION_METRIC_LABELS),
        format_func=POPULATION_METRIC_LABELS.get,
        key="population_metric",
    )
    population = population_by_year(filtered, year_array(lo, hi), genera)
    population_df = population_frame(population)
    if population_df.empty:
        st.info("No colonies match the current filters.")
    else:
        population_fig = build_population_chart(population_df, population_metric, state.current_year)
        population_fig.update_layout(margin={"r": 0, "t": 20, "l": 0, "b": 0})
        st.plotly_chart(population_fig, use_container_width=True)

        st.subheader(f"Mean size by year: {SIZE_METRIC_LABELS[state.size_metric]}")
        mean_rows = []
        for genus in genera:
            genus_colonies = [c for c in filtered if c.genus == genus]
            for year in year_array(lo, hi):
                mean_rows.append(
                    {
                        "year": year,
                        "genus": genus,
                        "mean_size": mean_size(genus_colonies, year, state.size_metric),
                    }
                )
        mean_df = pd.DataFrame(mean_rows, columns=["year", "genus", "mean_size"])
        mean_fig = build_population_chart(mean_df, "mean_size", state.current_year)
        mean_fig.update_layout(margin={"r": 0, "t": 20, "l": 0, "b": 0})
        st.plotly_chart(mean_fig, use_container_width=True)

        with st.expander("Population table"):
            st.dataframe(population_df, use_container_width=True, hide_index=True)

elif active_tab == "Size & Survival":
    filtered = apply_filters(colonies, state)
    metric_label = SIZE_METRIC_LABELS[state.size_metric]
    size_col, growth_col = st.columns(2)
    with size_col:
        st.subheader(f"Size frequency, {state.current_year}")
        sizes = alive_sizes(filtered, state.current_year, state.size_metric)
        bins = size_histogram(sizes, HISTOGRAM_BINS)
        if bins:
            hist_fig = build_size_histogram(bins, title=metric_label)
            hist_fig.update_layout(margin={"r": 0, "t": 20, "l": 0, "b": 0})
            st.plotly_chart(hist_fig, use_container_width=True)
        else:
            st.info("No measured colonies for this year.")
    with growth_col:
        st.subheader(f"Growth rates, {state.current_year}")
        rates = growth_rates(filtered, state.current_year)
        if rates:
            growth_fig = build_growth_histogram(rates)
            growth_fig.update_layout(margin={"r": 0, "t": 20, "l": 0, "b": 0})
            st.plotly_chart(growth_fig, use_container_width=True)
        else:
            st.info("No growth rates for this year (needs a measured prior year).")

    st.subheader("Kaplan-Meier survival by genus")
    genera = [g for g in state.all_genera if g in state.selected_genera]
    curves = survival_by_genus(filtered, genera, end_year=max_year)
    if curves:
        survival_fig = build_survival_chart(curves)
        survival_fig.update_layout(margin={"r": 0, "t": 20, "l": 0, "b": 0})
        st.plotly_chart(survival_fig, use_container_width=True)
    else:
        st.info("No colonies match the current filters.")

    summary = size_summary(filtered, state.current_year, state.size_metric, genera)
    if summary:
        st.subheader(f"Size summary, {state.current_year}")
        st.dataframe(
            pd.DataFrame.from_dict(summary, orient="index").rename(index=GENUS_NAMES),
            use_container_width=True,
        )

else:
    render_about(dataset)

if driver.playing:
    time.sleep(driver.seconds_until_tick() or 0.0)
    driver.poll()
    st.rerun()
