"""
California Languages Explorer — Data Loading Utilities
Loads the ACS variable catalog, county-level language estimates from the
Census API, and county boundaries.
"""
import json
import logging
import os
import time

import geopandas as gpd
import numpy as np
import pandas as pd
import requests

from utils.errors import FetchError

logger = logging.getLogger(__name__)

CENSUS_API_BASE = "https://api.census.gov/data"
COUNTY_GEOJSON_URL = "https://raw.githubusercontent.com/plotly/datasets/master/geojson-counties-fips.json"
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
CENSUS_SENTINELS = [-666666666, -999999999, -888888888, -555555555, -222222222]


def _backoff_seconds(attempt: int, base: float = 0.5, cap: float = 8.0) -> float:
    return min(cap, base * (2 ** attempt))


def _short_error_text(text: str, limit: int = 300) -> str:
    one_line = " ".join(text.split())
    if len(one_line) <= limit:
        return one_line
    return one_line[:limit] + "..."


def request_json(
    url: str,
    params: dict | None = None,
    stage: str = "census",
    retries: int = 3,
    timeout: int = 120,
    backoff: float = 0.5,
):
    """
    GET a JSON payload, retrying connection errors, timeouts and 429/5xx
    responses with exponential backoff. Other 4xx responses (bad variable
    code, invalid key) fail immediately.
    """
    for attempt in range(retries + 1):
        try:
            resp = requests.get(url, params=params, timeout=timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            if attempt < retries:
                wait = _backoff_seconds(attempt, backoff)
                logger.warning(f"{stage}: network error ({e}), retrying in {wait:.1f}s")
                time.sleep(wait)
                continue
            raise FetchError(stage, f"Network error after {retries + 1} attempts: {e}") from e

        status = resp.status_code
        if status in RETRYABLE_STATUS_CODES:
            if attempt < retries:
                wait = _backoff_seconds(attempt, backoff)
                logger.warning(f"{stage}: HTTP {status}, retrying in {wait:.1f}s")
                time.sleep(wait)
                continue
            raise FetchError(stage, f"HTTP {status} after {retries + 1} attempts: "
                                    f"{_short_error_text(resp.text)}")

        if status != 200:
            raise FetchError(stage, f"HTTP {status}: {_short_error_text(resp.text)}")

        try:
            return resp.json()
        except ValueError as e:
            # The API answers an invalid key with an HTML page and status 200
            raise FetchError(stage, f"Response is not JSON: {_short_error_text(resp.text)}") from e


def fetch_variable_catalog(vintage: int, cache_path: str | None = None, **request_kwargs) -> pd.DataFrame:
    """
    Load the ACS 5-Year variable catalog (name, label, concept).

    If cache_path exists, loads from cache. Otherwise downloads variables.json,
    caches, and returns.
    """
    if cache_path and os.path.exists(cache_path):
        logger.info(f"Loading cached variable catalog from {cache_path}")
        return pd.read_csv(cache_path, dtype=str).fillna("")

    url = f"{CENSUS_API_BASE}/{vintage}/acs/acs5/variables.json"
    logger.info(f"Downloading ACS variable catalog from {url}...")
    payload = request_json(url, stage="variables", **request_kwargs)

    try:
        variables = payload["variables"]
    except (KeyError, TypeError) as e:
        raise FetchError("variables", "Catalog payload has no 'variables' object") from e

    df = pd.DataFrame([
        {"name": name, "label": meta.get("label", ""), "concept": meta.get("concept", "")}
        for name, meta in variables.items()
    ])

    if cache_path:
        os.makedirs(os.path.dirname(cache_path), exist_ok=True)
        df.to_csv(cache_path, index=False)
        logger.info(f"Cached {len(df)} catalog variables to {cache_path}")

    return df


def parse_county_response(data: list, variables: dict) -> pd.DataFrame:
    """
    Reshape a Census API county response into one row per (county, variable).

    `data` is the API's list-of-lists (header row first); `variables` maps
    clean labels to variable codes. Returns GEOID, NAME, variable, estimate.
    """
    if not isinstance(data, list) or len(data) < 2:
        raise FetchError("estimates", "Census API returned no data rows")

    headers = data[0]
    required = {"NAME", "state", "county", *variables.values()}
    missing = required - set(headers)
    if missing:
        raise FetchError("estimates", f"Response is missing columns: {sorted(missing)}")

    df = pd.DataFrame(data[1:], columns=headers)

    # GEOID: state(2) + county(3) = 5 chars
    df["GEOID"] = df["state"].str.zfill(2) + df["county"].str.zfill(3)
    df["NAME"] = df["NAME"].str.split(",").str[0].str.strip()

    code_to_label = {code: label for label, code in variables.items()}
    df = df.melt(
        id_vars=["GEOID", "NAME"],
        value_vars=list(code_to_label),
        var_name="code",
        value_name="estimate",
    )
    df["variable"] = df["code"].map(code_to_label)

    df["estimate"] = pd.to_numeric(df["estimate"], errors="coerce")
    df["estimate"] = df["estimate"].replace(CENSUS_SENTINELS, np.nan)

    bad = df[df["estimate"].isna() | (df["estimate"] < 0)]
    if len(bad) > 0:
        raise FetchError(
            "estimates",
            f"{len(bad)} rows have missing or negative estimates "
            f"(e.g. {bad.iloc[0]['GEOID']} {bad.iloc[0]['variable']})",
        )

    df["estimate"] = df["estimate"].astype(int)
    return df[["GEOID", "NAME", "variable", "estimate"]].reset_index(drop=True)


def fetch_language_estimates(vintage: int, variables: dict, state_fips: str,
                             api_key: str | None = None, cache_path: str | None = None,
                             **request_kwargs) -> pd.DataFrame:
    """
    Pull ACS 5-Year county estimates for the given variables.

    Only estimate columns are requested; margins of error are never fetched.
    If cache_path exists, loads from cache.
    """
    if cache_path and os.path.exists(cache_path):
        logger.info(f"Loading cached ACS language data from {cache_path}")
        return pd.read_csv(cache_path, dtype={"GEOID": str})

    url = f"{CENSUS_API_BASE}/{vintage}/acs/acs5"
    params = {
        "get": ",".join(["NAME", *variables.values()]),
        "for": "county:*",
        "in": f"state:{state_fips}",
    }
    logger.info(f"Fetching {len(variables)} ACS variables for state {state_fips} (vintage {vintage})...")
    if api_key:
        params["key"] = api_key

    data = request_json(url, params=params, stage="estimates", **request_kwargs)
    df = parse_county_response(data, variables)
    logger.info(f"Fetched {df['GEOID'].nunique()} counties x {len(variables)} variables")

    if cache_path:
        os.makedirs(os.path.dirname(cache_path), exist_ok=True)
        df.to_csv(cache_path, index=False)
        logger.info(f"Cached ACS language data to {cache_path}")

    return df


def load_county_boundaries(cache_path: str, state_fips: str = "06", **request_kwargs) -> gpd.GeoDataFrame:
    """
    Download simplified county boundary GeoJSON for a state.
    Uses the plotly datasets GeoJSON source (single JSON, no shapefile deps).
    Returns a GeoDataFrame with GEOID and geometry in EPSG:4326.
    """
    if os.path.exists(cache_path):
        logger.info(f"Loading cached county boundaries from {cache_path}")
        with open(cache_path, "r") as f:
            state_geojson = json.load(f)
    else:
        logger.info(f"Downloading county boundaries from {COUNTY_GEOJSON_URL}...")
        national = request_json(COUNTY_GEOJSON_URL, stage="boundaries", **request_kwargs)

        # FIPS id starts with state_fips
        features = [
            f for f in national.get("features", [])
            if str(f.get("id", "")).startswith(state_fips)
        ]
        for f in features:
            f.setdefault("properties", {})["GEOID"] = str(f["id"]).zfill(5)

        state_geojson = {"type": "FeatureCollection", "features": features}
        logger.info(f"Filtered to {len(features)} county boundaries")

        os.makedirs(os.path.dirname(cache_path), exist_ok=True)
        with open(cache_path, "w") as f:
            json.dump(state_geojson, f)
        logger.info(f"Cached county boundaries to {cache_path}")

    if not state_geojson["features"]:
        raise FetchError("boundaries", f"No county boundaries found for state {state_fips}")

    gdf = gpd.GeoDataFrame.from_features(state_geojson["features"], crs="EPSG:4326")
    return gdf[["GEOID", "geometry"]]


def attach_geometry(estimates: pd.DataFrame, boundaries: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Join county boundaries onto the estimate rows by GEOID.

    Counties with no boundary are dropped with a warning; they cannot be mapped.
    """
    df = estimates.copy()
    df["GEOID"] = df["GEOID"].astype(str).str.zfill(5)
    bounds = boundaries[["GEOID", "geometry"]].drop_duplicates("GEOID")

    merged = df.merge(bounds, on="GEOID", how="left")
    no_geom = merged[merged["geometry"].isna()]["GEOID"].unique()
    if len(no_geom) > 0:
        logger.warning(f"Dropping {len(no_geom)} counties with no boundary: {', '.join(no_geom)}")
        merged = merged[merged["geometry"].notna()]

    return gpd.GeoDataFrame(merged.reset_index(drop=True), geometry="geometry", crs=boundaries.crs)


def fetch_county_language_rows(vintage: int, variables: dict, state_fips: str,
                               api_key: str | None = None,
                               estimates_cache: str | None = None,
                               boundaries_cache: str = "data/cache/counties.geojson",
                               **request_kwargs) -> gpd.GeoDataFrame:
    """Raw fetch stage: one row per (county, variable) with its county boundary."""
    estimates = fetch_language_estimates(
        vintage=vintage,
        variables=variables,
        state_fips=state_fips,
        api_key=api_key,
        cache_path=estimates_cache,
        **request_kwargs,
    )
    boundaries = load_county_boundaries(boundaries_cache, state_fips=state_fips, **request_kwargs)
    return attach_geometry(estimates, boundaries)
