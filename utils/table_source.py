"""
California Languages Explorer — Normalized Table Sources
Two interchangeable ways to supply the normalized language table: fetch and
normalize live from the Census API, or load a previously saved snapshot.
"""
import logging
import os
from collections.abc import Callable

import geopandas as gpd

from utils.census_api import fetch_county_language_rows, fetch_variable_catalog
from utils.data_prep import normalize_language_percentages
from utils.errors import ConfigurationError, DataQualityError
from utils.variables import select_language_variables

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = {"GEOID", "NAME", "variable", "estimate", "non_english_total", "percent", "degenerate"}


def save_snapshot(table: gpd.GeoDataFrame, path: str) -> None:
    """Write the normalized table to GeoJSON."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    if os.path.exists(path):
        os.remove(path)
    table.to_file(path, driver="GeoJSON")
    logger.info(f"Saved normalized snapshot ({len(table)} rows) to {path}")


def load_snapshot(path: str) -> gpd.GeoDataFrame:
    """Read a normalized GeoJSON snapshot back into the output column layout."""
    logger.info(f"Loading normalized snapshot from {path}")
    gdf = gpd.read_file(path)

    missing = SNAPSHOT_COLUMNS - set(gdf.columns)
    if missing:
        raise DataQualityError(f"Snapshot {path} is missing columns: {sorted(missing)}")

    gdf["GEOID"] = gdf["GEOID"].astype(str).str.zfill(5)
    gdf["estimate"] = gdf["estimate"].astype(int)
    gdf["non_english_total"] = gdf["non_english_total"].astype(int)
    gdf["percent"] = gdf["percent"].astype(float)
    gdf["degenerate"] = gdf["degenerate"].astype(bool)
    columns = ["GEOID", "NAME", "variable", "estimate", "geometry",
               "non_english_total", "percent", "degenerate"]
    return gdf[columns]


def build_live_table(
    vintage: int,
    state_fips: str,
    api_key: str,
    table_prefix: str = "C16001_",
    catalog_cache: str | None = None,
    raw_cache: str | None = None,
    boundaries_cache: str = "data/cache/counties.geojson",
    snapshot_path: str | None = None,
    **request_kwargs,
) -> gpd.GeoDataFrame:
    """Variable selection -> raw fetch -> normalization, saving a snapshot if asked."""
    catalog = fetch_variable_catalog(vintage, cache_path=catalog_cache, **request_kwargs)
    variables = select_language_variables(catalog, table_prefix=table_prefix)

    rows = fetch_county_language_rows(
        vintage=vintage,
        variables=variables,
        state_fips=state_fips,
        api_key=api_key,
        estimates_cache=raw_cache,
        boundaries_cache=boundaries_cache,
        **request_kwargs,
    )
    table = normalize_language_percentages(rows)

    if snapshot_path:
        save_snapshot(table, snapshot_path)
    return table


def resolve_table_source(api_key: str | None, snapshot_path: str | None,
                         **live_kwargs) -> Callable[[], gpd.GeoDataFrame]:
    """
    Decide once, at startup, where the normalized table comes from.

    With an API key the table is fetched live; without one, the snapshot is
    used. Raises ConfigurationError when neither is available.
    """
    if api_key:
        logger.info("Census API key found; normalized table will be fetched live")
        return lambda: build_live_table(api_key=api_key, snapshot_path=snapshot_path, **live_kwargs)

    if snapshot_path and os.path.exists(snapshot_path):
        logger.info(f"No Census API key; using snapshot {snapshot_path}")
        return lambda: load_snapshot(snapshot_path)

    raise ConfigurationError(
        "No CENSUS_API_KEY set and no normalized snapshot found"
        + (f" at {snapshot_path}" if snapshot_path else "")
        + ". Set CENSUS_API_KEY or provide a snapshot."
    )
