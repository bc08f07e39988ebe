"""
California Languages Explorer — County Boundaries Layer
Dashed county outlines with county-name tooltips for geographic context.
"""
import json

import folium
import geopandas as gpd


def county_outlines(table: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """One geometry per county, taken from the normalized table."""
    return table[["GEOID", "NAME", "geometry"]].drop_duplicates("GEOID").reset_index(drop=True)


def build_county_boundaries_layer(table: gpd.GeoDataFrame) -> folium.FeatureGroup:
    """
    Build a county boundary overlay with dashed outlines and hover tooltips.
    """
    outlines = county_outlines(table)
    geojson_data = json.loads(outlines.to_json())

    fg = folium.FeatureGroup(name="County Boundaries", show=True)

    style_function = lambda feature: {
        "fillOpacity": 0,
        "color": "#888888",
        "weight": 1.0,
        "dashArray": "5 5",
    }

    folium.GeoJson(
        geojson_data,
        name="County Boundaries",
        style_function=style_function,
        tooltip=folium.GeoJsonTooltip(
            fields=["NAME"],
            aliases=["County:"],
            style="font-family:Arial,sans-serif;font-size:12px;",
        ),
    ).add_to(fg)
    return fg
