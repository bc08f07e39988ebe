"""
California Languages Explorer — Branding & UI Chrome
Title bar, data source badge, statewide-view button, and tooltip CSS.
"""
import folium

from utils.popup import POPUP_CSS


def add_tooltip_styles(m: folium.Map) -> folium.Map:
    """Put the shared tooltip CSS classes in the page head, once per map."""
    m.get_root().header.add_child(folium.Element(POPUP_CSS), name="lm_tooltip_css")
    return m


def build_title_bar(state_name: str = "California", vintage: int = 2019) -> folium.Element:
    """Fixed-position title bar at the top of the map."""
    html = f'''
    <div id="title-bar" style="
        position:fixed; top:0; left:0; right:0; z-index:1000;
        background:rgba(255,255,255,0.95);
        padding:10px 20px;
        box-shadow:0 2px 6px rgba(0,0,0,0.15);
        font-family:Arial,sans-serif;
        max-height:65px; overflow:hidden;
    ">
        <div style="font-size:14px;font-weight:bold;letter-spacing:0.5px;color:#222">
            {state_name.upper()} LANGUAGES EXPLORER
        </div>
        <div style="font-size:12px;color:#555;margin-top:2px">
            Which languages do non-English speakers use at home? Share of each
            county&#39;s non-English speakers, by language.
        </div>
        <div style="font-size:11px;color:#999;margin-top:1px">
            Toggle languages in the layer control &middot; Hover for details &middot; Source: ACS {vintage} 5-Year
        </div>
    </div>
    '''
    return folium.Element(html)


def build_source_badge(vintage: int, table_id: str, state_name: str = "California") -> folium.Element:
    """ACS vintage and table the map was built from, bottom-right corner."""
    html = f'''
    <div id="source-badge" style="
        position:fixed; bottom:10px; right:10px; z-index:1000;
        background:white; padding:6px 12px; border-radius:4px;
        font-family:Arial,sans-serif; font-size:11px; color:#555;
        box-shadow:0 1px 3px rgba(0,0,0,0.2);
    ">{state_name} counties &middot; U.S. Census Bureau, ACS {vintage - 4}&ndash;{vintage}
    5-Year, Table <b>{table_id}</b></div>
    '''
    return folium.Element(html)


def build_statewide_view_button(m: folium.Map, state_name: str, center: list, zoom: int) -> folium.Element:
    """Button that flies this map back to the whole-state view."""
    lat, lon = center
    html = f'''
    <button id="statewide-view-btn"
        onclick="{m.get_name()}.flyTo([{lat}, {lon}], {zoom});"
        title="Show all of {state_name}"
        style="
        position:fixed; top:75px; right:10px; z-index:1000;
        background:white; border:1px solid #ccc; border-radius:4px;
        padding:6px 12px; cursor:pointer;
        font-family:Arial,sans-serif; font-size:12px; color:#333;
    ">&#8635; All of {state_name}</button>
    '''
    return folium.Element(html)
