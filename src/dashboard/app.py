"""Streamlit dashboard for the Montréal incident map."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List

import pandas as pd
import pydeck as pdk
import streamlit as st

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from src.common.config import AppConfig, load_config
from src.common.errors import DataSourceError, NoHomeProfile
from src.common.logging_config import setup_logging
from src.common.models import FilterState, PoliceStationPoint
from src.ingest.ingestion_service import IngestionService
from src.ingest.sources import LatestIncidentSource, NearIncidentSource, PoliceStationSource
from src.pipeline import filters
from src.pipeline.declusterer import Declusterer
from src.pipeline.hover import HoverLink
from src.pipeline.render import home_circle_frame, incident_frame, sort_feed, station_frame
from src.pipeline.selector import DatasetSelector

logger = logging.getLogger("src.dashboard")

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
CONFIG_PATH = Path(os.environ.get("INCIDENT_MAP_CONFIG", "config/local.yaml"))


def _load_app_config() -> AppConfig:
    config = load_config(CONFIG_PATH)
    setup_logging(config.logging.level, config.logging.file)
    return config


def _service(config: AppConfig) -> IngestionService:
    return IngestionService(
        config.api.base_url,
        token_provider=lambda: st.session_state.get("api_token") or None,
        timeout_seconds=config.api.timeout_seconds,
    )


def _selector(config: AppConfig) -> DatasetSelector:
    if "selector" not in st.session_state:
        service = _service(config)
        st.session_state["selector"] = DatasetSelector(
            LatestIncidentSource(service, limit=config.limits.latest_limit),
            NearIncidentSource(service, limit=config.limits.near_limit),
        )
        st.session_state["hover"] = HoverLink()
    return st.session_state["selector"]


@st.cache_data(ttl=int(os.environ.get("INCIDENT_MAP_REFRESH_SECONDS", "60")))
def load_stations(base_url: str, timeout_seconds: float) -> List[PoliceStationPoint]:
    source = PoliceStationSource(IngestionService(base_url, timeout_seconds=timeout_seconds))
    try:
        return asyncio.run(source.load())
    except DataSourceError as exc:
        logger.warning("PDQ fetch failed: %s", exc)
        return []


def _filter_sidebar(years: List[int], categories: List[str]) -> FilterState:
    seeded = filters.initial_filters(st.session_state.get("filters"), years, categories)
    state = seeded if seeded is not None else FilterState.everything(years, categories)

    st.sidebar.subheader("Filters")
    if st.sidebar.button("All / none years"):
        state = filters.toggle_all_years(state, years)
    chosen_years = st.sidebar.multiselect("Years", options=years, default=sorted(state.years & set(years), reverse=True))

    if st.sidebar.button("All / none months"):
        state = filters.toggle_all_months(state)
    chosen_months = st.sidebar.multiselect(
        "Months",
        options=list(range(12)),
        default=sorted(state.months),
        format_func=lambda m: MONTH_LABELS[m],
    )

    if st.sidebar.button("All / none categories"):
        state = filters.toggle_all_categories(state, categories)
    chosen_categories = st.sidebar.multiselect(
        "Categories", options=categories, default=sorted(state.categories & set(categories))
    )

    state = filters.with_categories(
        filters.with_months(filters.with_years(state, chosen_years), chosen_months), chosen_categories
    )
    if seeded is not None:
        st.session_state["filters"] = state
    return state


def main() -> None:
    config = _load_app_config()
    st.set_page_config(page_title="Montréal incidents", layout="wide")
    st.title("Montréal incidents")

    selector = _selector(config)
    hover: HoverLink = st.session_state["hover"]

    token = st.sidebar.text_input("API token", type="password", key="api_token")
    selector.set_authenticated(bool(token))

    refresh = st.sidebar.button("Refresh data now")
    if refresh or not selector.state.latest:
        st.cache_data.clear()
        asyncio.run(selector.load_latest())
    if refresh and selector.state.in_near:
        try:
            asyncio.run(selector.refresh_near())
        except NoHomeProfile as exc:
            logger.info("Near dataset unavailable: %s", exc.message)

    dataset = st.sidebar.radio(
        "Dataset",
        options=["Latest", "Near you"],
        index=1 if selector.state.in_near else 0,
        disabled=not selector.state.authenticated,
        help=None if selector.state.authenticated else "Sign in to use Near you",
    )
    if dataset == "Near you" and not selector.state.in_near:
        try:
            asyncio.run(selector.select_near())
        except NoHomeProfile as exc:
            logger.info("Near dataset unavailable: %s", exc.message)
    elif dataset == "Latest" and selector.state.in_near:
        selector.select_latest()

    state = selector.state
    if state.latest_error:
        st.error(state.latest_error)
    if state.in_near and state.near_error:
        st.warning(state.near_error)
    if state.can_show_near:
        st.caption(f"Radius: {state.home_radius_m:g} m")

    filter_state = _filter_sidebar(state.available_years, state.available_categories)
    show_stations = st.sidebar.checkbox("Show PDQs", value=config.dashboard.show_stations)

    visible = filters.apply_filters(state.active_points, filter_state)
    displaced = Declusterer(
        precision=config.jitter.precision,
        base_radius_m=config.jitter.base_radius_m,
        max_radius_m=config.jitter.max_radius_m,
    ).run(visible)

    feed = sort_feed(visible)
    options = [None] + [str(point.id) for point in feed]
    picked = st.selectbox(
        "Highlight incident",
        options=options,
        format_func=lambda value: "None" if value is None else value,
    )
    hover.set_highlighted(picked)

    stations = load_stations(config.api.base_url, config.api.timeout_seconds) if show_stations else []
    if state.active_loading:
        st.caption("Loading…")
    else:
        st.caption(f"{len(displaced)} incidents • {len(stations)} PDQs")

    layers = []
    circle = home_circle_frame(state.home, show=state.can_show_near)
    if not circle.empty:
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=circle,
                get_position="[longitude, latitude]",
                get_radius="radius_m",
                radius_units="meters",
                get_fill_color="fill_color",
                get_line_color="line_color",
                stroked=True,
                line_width_min_pixels=2,
            )
        )

    points_df = incident_frame(displaced, hover)
    layers.append(
        pdk.Layer(
            "ScatterplotLayer",
            data=points_df,
            get_position="[j_lng, j_lat]",
            get_radius="radius",
            radius_units="pixels",
            get_fill_color="fill_color",
            get_line_color="line_color",
            stroked=True,
            line_width_min_pixels=2,
            pickable=True,
        )
    )
    if stations:
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=station_frame(stations),
                get_position="[longitude, latitude]",
                get_radius="radius",
                radius_units="pixels",
                get_fill_color="fill_color",
                get_line_color="line_color",
                stroked=True,
                line_width_min_pixels=2,
                pickable=True,
            )
        )

    center_lat, center_lng = config.map.center
    deck = pdk.Deck(
        map_style=None,
        initial_view_state=pdk.ViewState(
            latitude=center_lat,
            longitude=center_lng,
            zoom=config.map.zoom,
            min_zoom=config.map.min_zoom,
            max_zoom=config.map.max_zoom,
        ),
        layers=layers,
        tooltip={"text": "{tooltip}"},
    )
    st.pydeck_chart(deck)

    st.subheader(f"Showing {len(feed)}")
    if not feed:
        st.info("No incidents found.")
    else:
        st.dataframe(
            pd.DataFrame(
                {
                    "id": [str(point.id) for point in feed],
                    "category": [point.category_label for point in feed],
                    "date": [point.timestamp for point in feed],
                }
            ),
            use_container_width=True,
        )


if __name__ == "__main__":
    main()
