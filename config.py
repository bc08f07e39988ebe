"""
California Languages Explorer — Configuration
All configuration: API, variable table, classification, map defaults, file paths.
"""
import os

# --- Census API Configuration ---
ACS_VINTAGE = 2019  # ACS 5-Year, covers 2015-2019
STATE_FIPS = "06"   # California
STATE_NAME = "California"
CENSUS_API_KEY = os.environ.get("CENSUS_API_KEY", None)

# Language Spoken at Home by Ability to Speak English (Table C16001)
LANGUAGE_TABLE_PREFIX = "C16001_"

# --- HTTP ---
REQUEST_TIMEOUT = 120
FETCH_RETRIES = 3
RETRY_BACKOFF = 0.5   # seconds, doubled on every attempt

# --- Classification ---
# Passed through unchanged to the choropleth builder
CLASSIFICATION_METHODS = ["equal", "kmeans", "hclust", "jenks"]
DEFAULT_METHOD = "jenks"
N_CLASSES = 5
COLOR_SCALE = ["#FFFFCC", "#A1DAB4", "#41B6C4", "#2C7FB8", "#253494"]
NO_DATA_COLOR = "#F0F0F0"
FILL_OPACITY = 0.75
LINE_OPACITY = 0.6

# --- Map Defaults ---
DEFAULT_CENTER = [37.2, -119.5]  # Central California
DEFAULT_ZOOM = 6
TILE_PROVIDER = "cartodbpositron"
SIMPLIFY_TOLERANCE = 0.001

# --- File Paths ---
CACHE_DIR = "data/cache"
OUTPUT_DIR = "output"
CATALOG_CACHE = f"{CACHE_DIR}/acs_variables_{ACS_VINTAGE}.csv"
RAW_LANGUAGE_CACHE = f"{CACHE_DIR}/acs_language_raw.csv"
COUNTY_GEOJSON_CACHE = f"{CACHE_DIR}/california_counties.geojson"
NORMALIZED_SNAPSHOT = f"{CACHE_DIR}/language_percentages.geojson"
MAP_OUTPUT = f"{OUTPUT_DIR}/california_languages.html"
