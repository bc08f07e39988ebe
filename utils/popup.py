"""
California Languages Explorer — Tooltip HTML Generation
Transforms normalized county/language rows into styled HTML for Leaflet tooltips.
"""
import math


# CSS classes injected once into the page (via branding.py add_tooltip_styles)
# to keep per-feature HTML small.
POPUP_CSS = """
<style>
.lm-tt{font-family:Arial,sans-serif;font-size:12px;padding:4px 8px;max-width:240px;line-height:1.4}
.lm-h{font-weight:bold;font-size:13px}
.lm-m{color:#888;font-size:11px}
.lm-w{color:#B35806;font-size:11px}
</style>
"""


def format_count(value) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "N/A"
    try:
        return f"{int(value):,}"
    except (ValueError, TypeError):
        return "N/A"


def format_percent(value) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "N/A"
    try:
        return f"{float(value):.2f}%"
    except (ValueError, TypeError):
        return "N/A"


def build_tooltip_html(row: dict) -> str:
    """Hover card: county, language share, speaker count and denominator."""
    county_name = row.get("NAME", "Unknown county")
    language = row.get("variable", "")
    pct = format_percent(row.get("percent"))
    speakers = format_count(row.get("estimate"))
    denom = format_count(row.get("non_english_total"))

    html = (
        f'<div class="lm-tt">'
        f'<div class="lm-h">{county_name}</div>'
        f'<b>{pct}</b> of non-English speakers speak {language}<br>'
        f'<span class="lm-m">{speakers} of {denom} speakers</span>'
    )
    if row.get("degenerate"):
        html += '<br><span class="lm-w">No non-English speakers reported</span>'
    return html + "</div>"
