"""Entry point: run one viewport session against the API and export its layers."""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace

from skytrade_explorer.common.config import AppConfig, load_config, resolve_api_base_url
from skytrade_explorer.common.models import TABS, GeoBounds, data_types_for_tab
from skytrade_explorer.hexgrid.export import GeoJSONWriter, points_to_feature_collection
from skytrade_explorer.ingest.point_source import PointSource
from skytrade_explorer.viewport.controller import ViewportController


async def run_session(
    config: AppConfig,
    bounds: GeoBounds | None,
    zoom: float | None,
    source: PointSource | None = None,
) -> ViewportController:
    controller = ViewportController(config, source=source)
    try:
        await controller.start()
        if bounds is not None or zoom is not None:
            controller.move_start()
            controller.move_end(bounds or controller.bounds, zoom)
            await controller.debouncer.wait()
    finally:
        await controller.close()
    return controller


def main() -> None:
    parser = argparse.ArgumentParser(description="Fetch drone/property points for a viewport and bin them into hex cells.")
    parser.add_argument("--config", default="config/local.yaml", help="Path to YAML config.")
    parser.add_argument(
        "--bounds",
        nargs=4,
        type=float,
        metavar=("NORTH", "SOUTH", "EAST", "WEST"),
        help="Viewport to settle on after the initial load.",
    )
    parser.add_argument("--zoom", type=float, help="Zoom level of that viewport.")
    parser.add_argument("--tab", choices=TABS, help="Override viewport.tab from the config.")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = load_config(args.config)
    if args.tab:
        config = replace(config, viewport=replace(config.viewport, tab=args.tab))
    resolve_api_base_url(config)

    bounds = None
    if args.bounds:
        north, south, east, west = args.bounds
        if north < south:
            raise ValueError("--bounds NORTH must not be below SOUTH.")
        bounds = GeoBounds(north=north, south=south, east=east, west=west)

    controller = asyncio.run(run_session(config, bounds, args.zoom))
    if controller.error is not None:
        print(f"Warning: {controller.error.message}")

    collections = {}
    for data_type in data_types_for_tab(controller.tab):
        collections[f"{data_type}_hexes"] = controller.hex_grid(data_type)
        collections[f"{data_type}_points"] = points_to_feature_collection(
            controller.visible_points(data_type), data_type
        )
    GeoJSONWriter(config.output.base_path).write(collections)
    print(f"Wrote {len(collections)} layers to {config.output.base_path} ({controller.stats()})")


if __name__ == "__main__":
    main()
