"""
California Languages Explorer — Interactive Dashboard
Shiny app: pick a language and a classification method; the map re-renders
on every change from the in-memory normalized table.

Run with: shiny run app.py
"""
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from shiny import App, render, ui

from build_map import load_table
from layers.language_choropleth import language_map_html
from utils.data_prep import available_languages
import config

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

METHOD_LABELS = {
    "equal": "Equal intervals",
    "kmeans": "K-means",
    "hclust": "Hierarchical clustering",
    "jenks": "Jenks natural breaks",
}

# Loaded once at startup; read-only afterwards, so sessions can share it
TABLE = load_table()
LANGUAGES = available_languages(TABLE)
logger.info(f"Dashboard ready with {len(LANGUAGES)} languages")


def map_html(language: str | None, method: str) -> str:
    return language_map_html(
        TABLE,
        language,
        method=method,
        k=config.N_CLASSES,
        center=config.DEFAULT_CENTER,
        zoom=config.DEFAULT_ZOOM,
        tiles=config.TILE_PROVIDER,
        colors=config.COLOR_SCALE,
    )


app_ui = ui.page_fluid(
    ui.h3(f"Languages Spoken at Home in {config.STATE_NAME} Counties"),
    ui.markdown(
        "Share of each county's non-English speakers who speak the selected "
        f"language at home. ACS {config.ACS_VINTAGE} 5-Year, Table C16001."
    ),
    ui.layout_sidebar(
        ui.sidebar(
            ui.input_select(
                "language",
                "Language",
                choices=LANGUAGES,
                selected=LANGUAGES[0] if LANGUAGES else None,
            ),
            ui.input_radio_buttons(
                "method",
                "Classification method",
                choices={m: METHOD_LABELS[m] for m in config.CLASSIFICATION_METHODS},
                selected=config.DEFAULT_METHOD,
            ),
        ),
        ui.card(
            ui.output_ui("language_map"),
            full_screen=True,
        ),
    ),
)


def server(input, output, session):
    @render.ui
    def language_map():
        return ui.HTML(map_html(input.language(), input.method()))


app = App(app_ui, server)
