"""Streamlit dashboard over the exported SkyTrade hex layers."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pandas as pd
import pydeck as pdk
import streamlit as st

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from skytrade_explorer.common.config import load_config
from skytrade_explorer.common.models import AIR_SPACE, DRONE

CACHE_TTL = int(os.environ.get("SKYTRADE_UI_REFRESH_SECONDS", "60"))

FILL_COLORS = {
    DRONE: ([229, 245, 249], [44, 162, 95]),
    AIR_SPACE: ([241, 238, 246], [117, 107, 177]),
}
LINE_COLORS = {DRONE: [17, 180, 218], AIR_SPACE: [218, 113, 17]}
TAB_LABELS = {DRONE: "Drones", AIR_SPACE: "Air rights"}


@st.cache_data(ttl=CACHE_TTL)
def load_hexes(path: Path) -> pd.DataFrame:
    """Flatten a hex FeatureCollection into one row per cell."""

    if not path.exists():
        return pd.DataFrame()
    with open(path, "r", encoding="utf-8") as handle:
        collection = json.load(handle)
    rows = [
        {**feature["properties"], "polygon": feature["geometry"]["coordinates"][0]}
        for feature in collection.get("features", [])
    ]
    return pd.DataFrame(rows)


@st.cache_data(ttl=CACHE_TTL)
def load_points(path: Path) -> pd.DataFrame:
    if not path.exists():
        return pd.DataFrame()
    with open(path, "r", encoding="utf-8") as handle:
        collection = json.load(handle)
    rows = []
    for feature in collection.get("features", []):
        lng, lat = feature["geometry"]["coordinates"]
        rows.append({**feature["properties"], "longitude": lng, "latitude": lat})
    return pd.DataFrame(rows)


def fill_color(count: int, max_count: int, data_type: str) -> list[int]:
    low, high = FILL_COLORS[data_type]
    if max_count <= 2:
        return high + [200]
    share = min(count / max_count, 1.0)
    return [round(lo + (hi - lo) * share) for lo, hi in zip(low, high)] + [int(120 + 110 * share)]


def main() -> None:
    config_path = Path(os.environ.get("SKYTRADE_CONFIG", "config/local.yaml"))
    config = load_config(config_path)
    base_path = Path(config.output.base_path)

    st.set_page_config(page_title="SkyTrade Explorer", layout="wide")
    st.title("SkyTrade Explorer")
    st.caption(f"Hex layers exported by the explorer session. Cache TTL: {CACHE_TTL}s.")
    if st.sidebar.button("Refresh data now"):
        st.cache_data.clear()
        rerun_fn = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
        if rerun_fn:
            rerun_fn()

    tabs = [DRONE, AIR_SPACE]
    data_type = st.sidebar.radio(
        "Layer",
        options=tabs,
        index=tabs.index(config.dashboard.default_tab) if config.dashboard.default_tab in tabs else 0,
        format_func=lambda value: TAB_LABELS[value],
    )
    hexes = load_hexes(base_path / f"{data_type}_hexes.geojson")
    points = load_points(base_path / f"{data_type}_points.geojson")

    if hexes.empty:
        st.warning("Run `python -m skytrade_explorer.viewport.explore --config config/local.yaml` to export layers.")
        return

    min_count = st.sidebar.slider("Minimum points per cell", 1, int(hexes["count"].max()), value=1)
    visible = hexes[hexes["count"] >= min_count].copy()
    max_count = int(visible["count"].max()) if not visible.empty else 1
    visible["fill_color"] = [fill_color(int(count), max_count, data_type) for count in visible["count"]]

    resolution = int(hexes["resolution"].iloc[0])
    st.subheader(f"{TAB_LABELS[data_type]}: {len(visible)} cells at resolution {resolution}")
    if visible.empty:
        st.info("No cells meet the filter.")
    else:
        first_ring = visible["polygon"].iloc[0]
        layer = pdk.Layer(
            "PolygonLayer",
            data=visible,
            get_polygon="polygon",
            get_fill_color="fill_color",
            get_line_color=LINE_COLORS[data_type],
            line_width_min_pixels=1,
            pickable=True,
            auto_highlight=True,
        )
        deck = pdk.Deck(
            map_style=None,
            initial_view_state=pdk.ViewState(
                latitude=first_ring[0][1],
                longitude=first_ring[0][0],
                zoom=max(resolution - 1, 2),
            ),
            layers=[layer],
            tooltip={"text": "Cell: {cellId}\nPoints: {count}"},
        )
        st.pydeck_chart(deck)

    st.sidebar.subheader("Cell details")
    ranked = visible.sort_values("count", ascending=False)
    cell_id = st.sidebar.selectbox("Cell", options=["-"] + list(ranked["cellId"]))
    if cell_id != "-":
        cell = ranked[ranked["cellId"] == cell_id].iloc[0]
        st.sidebar.metric("Points", int(cell["count"]))
        if not points.empty:
            ring = pd.DataFrame(cell["polygon"], columns=["longitude", "latitude"])
            inside = points[
                points["latitude"].between(ring["latitude"].min(), ring["latitude"].max())
                & points["longitude"].between(ring["longitude"].min(), ring["longitude"].max())
            ]
            st.sidebar.dataframe(inside.drop(columns=["longitude", "latitude"]), use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Densest cells")
        st.dataframe(ranked[["cellId", "count", "resolution"]].head(20), use_container_width=True)
    with col2:
        st.subheader("Loaded points")
        if points.empty:
            st.info("No point layer exported.")
        else:
            st.dataframe(points.head(50), use_container_width=True)


if __name__ == "__main__":
    main()
