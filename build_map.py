"""
California Languages Explorer — Build Script
Fetch (or load), normalize, and render one toggleable choropleth per language.
"""
import logging
import os
import sys

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import folium

from utils.data_prep import available_languages, summarize_language
from utils.errors import LanguageMapError
from utils.table_source import resolve_table_source
from layers.county_boundaries import build_county_boundaries_layer
from layers.language_choropleth import BindColormap, build_language_layer
from utils.branding import (
    add_tooltip_styles,
    build_title_bar,
    build_source_badge,
    build_statewide_view_button,
)
import config

TABLE_ID = config.LANGUAGE_TABLE_PREFIX.rstrip("_")

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def load_table():
    """Resolve the table source from config and load the normalized table."""
    source = resolve_table_source(
        api_key=config.CENSUS_API_KEY,
        snapshot_path=config.NORMALIZED_SNAPSHOT,
        vintage=config.ACS_VINTAGE,
        state_fips=config.STATE_FIPS,
        table_prefix=config.LANGUAGE_TABLE_PREFIX,
        catalog_cache=config.CATALOG_CACHE,
        raw_cache=config.RAW_LANGUAGE_CACHE,
        boundaries_cache=config.COUNTY_GEOJSON_CACHE,
        retries=config.FETCH_RETRIES,
        timeout=config.REQUEST_TIMEOUT,
        backoff=config.RETRY_BACKOFF,
    )
    return source()


def build_map(table, method: str = config.DEFAULT_METHOD) -> folium.Map:
    """Statewide map with one layer per language; only the first is shown."""
    m = folium.Map(
        location=config.DEFAULT_CENTER,
        zoom_start=config.DEFAULT_ZOOM,
        tiles=config.TILE_PROVIDER,
        prefer_canvas=True,
    )

    layer_config = {
        "no_data_color": config.NO_DATA_COLOR,
        "fill_opacity": config.FILL_OPACITY,
        "line_opacity": config.LINE_OPACITY,
    }

    # Layer z-order: language choropleths (bottom) -> county boundaries (top)
    for i, language in enumerate(available_languages(table)):
        built = build_language_layer(
            table,
            language,
            method=method,
            k=config.N_CLASSES,
            colors=config.COLOR_SCALE,
            show=(i == 0),
            simplify_tolerance=config.SIMPLIFY_TOLERANCE,
            config=layer_config,
        )
        if built is None:
            continue
        layer, colormap = built
        layer.add_to(m)
        m.add_child(colormap)
        m.add_child(BindColormap(layer, colormap, visible=(i == 0)))

    build_county_boundaries_layer(table).add_to(m)
    folium.LayerControl(collapsed=False).add_to(m)

    add_tooltip_styles(m)
    m.get_root().html.add_child(build_title_bar(config.STATE_NAME, config.ACS_VINTAGE))
    m.get_root().html.add_child(
        build_source_badge(config.ACS_VINTAGE, TABLE_ID, config.STATE_NAME)
    )
    m.get_root().html.add_child(
        build_statewide_view_button(m, config.STATE_NAME, config.DEFAULT_CENTER, config.DEFAULT_ZOOM)
    )
    return m


def main():
    logger.info("=== California Languages Explorer — Data Pipeline ===")

    try:
        table = load_table()
    except LanguageMapError as e:
        logger.error(f"Pipeline halted: {e}")
        sys.exit(1)

    logger.info(f"Normalized table: {len(table)} rows, {table['GEOID'].nunique()} counties")

    degenerate = table.loc[table["degenerate"], "NAME"].unique()
    if len(degenerate) > 0:
        logger.warning(f"Degenerate counties (no non-English speakers): {', '.join(degenerate)}")

    # Summary stats
    for language in available_languages(table):
        s = summarize_language(table, language)
        logger.info(
            f"  {language}: median {s['median_percent']:.2f}%, "
            f"highest in {s['top_county']} ({s['top_percent']:.2f}%)"
        )

    logger.info("Data pipeline complete. Building map...")
    m = build_map(table)

    os.makedirs(config.OUTPUT_DIR, exist_ok=True)
    m.save(config.MAP_OUTPUT)

    file_size_mb = os.path.getsize(config.MAP_OUTPUT) / (1024 * 1024)
    logger.info(f"Map saved to {config.MAP_OUTPUT} ({file_size_mb:.1f} MB)")
    logger.info("Build complete. Open the HTML file in a browser to review.")


if __name__ == "__main__":
    main()
