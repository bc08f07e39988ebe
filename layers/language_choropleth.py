"""
California Languages Explorer — Language Choropleth Layer
County polygons colored by the share of non-English speakers who speak one language.
"""
import json
import logging

import branca.colormap as cm
import folium
import geopandas as gpd
import numpy as np

from branca.element import MacroElement
from jinja2 import Template

from utils.branding import add_tooltip_styles
from utils.classification import class_index, parse_method
from utils.popup import build_tooltip_html

logger = logging.getLogger(__name__)

DEFAULT_COLORS = ["#FFFFCC", "#A1DAB4", "#41B6C4", "#2C7FB8", "#253494"]


class BindColormap(MacroElement):
    """Show a layer's legend only while the layer is toggled on."""

    _template = Template("""
        {% macro script(this, kwargs) %}
            {{ this.colormap.get_name() }}.svg.node().style.display =
                {{ "'block'" if this.visible else "'none'" }};
            {{ this._parent.get_name() }}.on('overlayadd', function (e) {
                if (e.layer == {{ this.layer.get_name() }}) {
                    {{ this.colormap.get_name() }}.svg.node().style.display = 'block';
                }});
            {{ this._parent.get_name() }}.on('overlayremove', function (e) {
                if (e.layer == {{ this.layer.get_name() }}) {
                    {{ this.colormap.get_name() }}.svg.node().style.display = 'none';
                }});
        {% endmacro %}
    """)

    def __init__(self, layer, colormap, visible: bool = True):
        super().__init__()
        self._name = "BindColormap"
        self.layer = layer
        self.colormap = colormap
        self.visible = visible


def language_rows(table: gpd.GeoDataFrame, language: str) -> gpd.GeoDataFrame:
    return table[table["variable"] == language]


def build_language_colormap(values, method: str, k: int = 5,
                            colors: list[str] | None = None,
                            caption: str = "") -> cm.StepColormap:
    """Step colormap whose thresholds come from the chosen classification method."""
    colors = colors or DEFAULT_COLORS
    index = class_index(values, method, k)
    base = cm.LinearColormap(colors=colors, vmin=index[0], vmax=index[-1])
    colormap = base.to_step(index=index)
    colormap.caption = caption
    return colormap


def build_language_layer(
    table: gpd.GeoDataFrame,
    language: str,
    method: str = "jenks",
    k: int = 5,
    colors: list[str] | None = None,
    show: bool = True,
    simplify_tolerance: float | None = 0.001,
    config: dict | None = None,
) -> tuple[folium.FeatureGroup, cm.StepColormap] | None:
    """
    Build a choropleth FeatureGroup for one language.

    Returns (FeatureGroup, colormap), or None when no rows match `language`.
    The method name is passed through unchanged to the classifier.
    """
    method = parse_method(method).value
    config = config or {}
    no_data_color = config.get("no_data_color", "#F0F0F0")
    fill_opacity = config.get("fill_opacity", 0.75)
    line_opacity = config.get("line_opacity", 0.6)

    gdf = language_rows(table, language)
    if gdf.empty:
        logger.info(f"No rows for language {language!r}; nothing to render")
        return None

    gdf = gdf.copy()
    if gdf.crs and gdf.crs.to_epsg() != 4326:
        gdf = gdf.to_crs(epsg=4326)
    if simplify_tolerance:
        gdf["geometry"] = gdf["geometry"].simplify(
            tolerance=simplify_tolerance, preserve_topology=True
        )

    gdf["tooltip_html"] = [build_tooltip_html(row) for row in gdf.to_dict("records")]
    gdf["degenerate"] = gdf["degenerate"].astype(bool)

    colormap = build_language_colormap(
        gdf["percent"], method, k=k, colors=colors,
        caption=f"% of non-English speakers who speak {language} ({method})",
    )

    geojson_data = json.loads(gdf.to_json())

    def style_function(feature):
        pct = feature["properties"].get("percent")
        if pct is None or (isinstance(pct, float) and np.isnan(pct)):
            fill_color = no_data_color
        else:
            fill_color = colormap(pct)
        return {
            "fillColor": fill_color,
            "fillOpacity": fill_opacity,
            "color": "#666",
            "weight": 0.5,
            "opacity": line_opacity,
        }

    fg = folium.FeatureGroup(name=language, show=show)
    folium.GeoJson(
        geojson_data,
        name=language,
        style_function=style_function,
        tooltip=folium.GeoJsonTooltip(fields=["tooltip_html"], labels=False),
    ).add_to(fg)

    return fg, colormap


def render_language_map(
    table: gpd.GeoDataFrame,
    language: str,
    method: str = "jenks",
    k: int = 5,
    center: list | None = None,
    zoom: int = 6,
    tiles: str = "cartodbpositron",
    colors: list[str] | None = None,
) -> folium.Map | None:
    """
    Render a single-language choropleth map.

    Returns None when `language` matches no rows, so the caller can show an
    empty state instead of an error.
    """
    built = build_language_layer(table, language, method=method, k=k, colors=colors)
    if built is None:
        return None
    layer, colormap = built

    if center is None:
        minx, miny, maxx, maxy = table.total_bounds
        center = [(miny + maxy) / 2, (minx + maxx) / 2]

    m = folium.Map(location=center, zoom_start=zoom, tiles=tiles)
    layer.add_to(m)
    m.add_child(colormap)
    add_tooltip_styles(m)
    return m


def language_map_html(table: gpd.GeoDataFrame, language: str | None,
                      method: str = "jenks", **map_kwargs) -> str:
    """HTML for a dashboard map region, or an empty-state message."""
    if not language:
        return "<div style='color:#888;padding:20px'>Select a language.</div>"
    m = render_language_map(table, language, method=method, **map_kwargs)
    if m is None:
        return f"<div style='color:#888;padding:20px'>No counties report {language}.</div>"
    return m._repr_html_()
