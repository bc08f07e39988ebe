"""
California Languages Explorer — Data Pipeline Tests
Validates the percentage normalization and, when present, the saved snapshot.
"""
import logging
import os
import sys

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from geopandas.testing import assert_geodataframe_equal
from shapely.geometry import box

# Ensure project root is on path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import config
from utils.data_prep import (
    available_languages,
    normalize_language_percentages,
    partition_rows,
    percent_of,
    summarize_language,
)
from utils.errors import DataQualityError, MissingCountyTotal

SNAPSHOT_PATH = os.path.join(
    os.path.dirname(__file__), "..", config.NORMALIZED_SNAPSHOT
)

ENGLISH = "Speak only English"


def make_rows(counties: dict) -> gpd.GeoDataFrame:
    """counties: {name: {variable: estimate}} -> raw CountyLanguageRow frame."""
    records = []
    for i, (name, values) in enumerate(counties.items()):
        geoid = f"06{2 * i + 1:03d}"
        geom = box(i, 0, i + 1, 1)
        for variable, estimate in values.items():
            records.append({
                "GEOID": geoid, "NAME": name, "variable": variable,
                "estimate": estimate, "geometry": geom,
            })
    return gpd.GeoDataFrame(records, geometry="geometry", crs="EPSG:4326")


@pytest.fixture(scope="module")
def raw_rows():
    return make_rows({
        "Alpha": {"Total": 1000, ENGLISH: 800, "Spanish": 150, "Tagalog (incl. Filipino)": 30},
        "Beta": {"Total": 500, ENGLISH: 500, "Spanish": 0},
        "Delta": {"Total": 2000, ENGLISH: 1400, "Spanish": 333, "Korean": 267},
    })


@pytest.fixture(scope="module")
def normalized(raw_rows):
    return normalize_language_percentages(raw_rows)


def pct(table, county, language):
    row = table[(table["NAME"] == county) & (table["variable"] == language)]
    assert len(row) == 1, f"Expected one row for ({county}, {language}), got {len(row)}"
    return row.iloc[0]


def test_alpha_scenario(normalized):
    """Total 1000, English 800 -> Spanish 75.00%, Tagalog 15.00%."""
    alpha = normalized[normalized["NAME"] == "Alpha"]
    assert len(alpha) == 2
    assert pct(normalized, "Alpha", "Spanish")["percent"] == 75.00
    assert pct(normalized, "Alpha", "Tagalog (incl. Filipino)")["percent"] == 15.00
    assert (alpha["non_english_total"] == 200).all()
    assert not alpha["degenerate"].any()


def test_beta_degenerate(normalized):
    """Zero non-English speakers -> percent 0 and flagged, no exception."""
    beta = pct(normalized, "Beta", "Spanish")
    assert beta["percent"] == 0.0
    assert beta["non_english_total"] == 0
    assert bool(beta["degenerate"]) is True


def test_degenerate_with_speakers_does_not_raise():
    rows = make_rows({"Beta": {"Total": 500, ENGLISH: 500, "Spanish": 12}})
    out = normalize_language_percentages(rows)
    assert out.iloc[0]["percent"] == 0.0
    assert bool(out.iloc[0]["degenerate"]) is True


def test_more_english_than_total_warns(caplog):
    rows = make_rows({"Zeta": {"Total": 500, ENGLISH: 600, "Spanish": 20}})
    with caplog.at_level(logging.WARNING, logger="utils.data_prep"):
        out = normalize_language_percentages(rows)
    assert "more English speakers than respondents" in caplog.text
    assert "06001" in caplog.text
    assert out.iloc[0]["non_english_total"] == -100
    assert bool(out.iloc[0]["degenerate"]) is False


def test_gamma_missing_total():
    rows = make_rows({
        "Alpha": {"Total": 1000, ENGLISH: 800, "Spanish": 150},
        "Gamma": {ENGLISH: 300, "Spanish": 50},
    })
    with pytest.raises(MissingCountyTotal) as excinfo:
        normalize_language_percentages(rows)
    gamma_geoid = rows.loc[rows["NAME"] == "Gamma", "GEOID"].iloc[0]
    assert excinfo.value.geoids == [gamma_geoid]


def test_missing_english_row():
    rows = make_rows({"Gamma": {"Total": 300, "Spanish": 50}})
    with pytest.raises(MissingCountyTotal, match="English"):
        normalize_language_percentages(rows)


def test_duplicate_total_rows():
    rows = make_rows({"Alpha": {"Total": 1000, ENGLISH: 800, "Spanish": 150}})
    rows = pd.concat([rows, rows[rows["variable"] == "Total"]], ignore_index=True)
    with pytest.raises(DataQualityError):
        normalize_language_percentages(gpd.GeoDataFrame(rows, geometry="geometry"))


def test_duplicate_language_rows():
    rows = make_rows({"Alpha": {"Total": 1000, ENGLISH: 800, "Spanish": 150}})
    rows = pd.concat([rows, rows[rows["variable"] == "Spanish"]], ignore_index=True)
    with pytest.raises(DataQualityError):
        normalize_language_percentages(gpd.GeoDataFrame(rows, geometry="geometry"))


def test_total_and_english_excluded(raw_rows, normalized):
    """Exactly one Total row per county before, none after."""
    before = raw_rows[raw_rows["variable"] == "Total"].groupby("GEOID").size()
    assert (before == 1).all()
    assert (normalized["variable"] == "Total").sum() == 0
    assert not normalized["variable"].str.contains("English").any()


def test_one_row_per_county_language(raw_rows, normalized):
    _, _, languages = partition_rows(raw_rows)
    assert len(normalized) == len(languages)
    assert not normalized.duplicated(subset=["GEOID", "variable"]).any()


def test_percent_formula(normalized):
    ok = normalized[~normalized["degenerate"]]
    expected = np.round(100 * ok["estimate"] / ok["non_english_total"], 2)
    assert (ok["percent"] == expected).all()


def test_percent_range(normalized):
    assert (normalized["percent"] >= 0).all()
    assert (normalized["percent"] <= 100).all()


def test_simplified_formula_matches_reference_form():
    """100*s/n agrees with 100*(1 - (n - s)/n) after rounding."""
    rng = np.random.default_rng(7)
    n = rng.integers(1, 5_000_000, size=2000)
    s = (rng.random(2000) * n).astype(int)
    reference = np.round(100 * (1 - (n - s) / n), 2)
    assert np.allclose(percent_of(s, n), reference, atol=0.011)


def test_rounding_is_half_to_even():
    # 0.125 and 0.375 are exact in binary
    assert percent_of([1], [800])[0] == 0.12
    assert percent_of([3], [800])[0] == 0.38


def test_idempotent(raw_rows):
    first = normalize_language_percentages(raw_rows)
    second = normalize_language_percentages(raw_rows)
    assert_geodataframe_equal(first, second)


def test_input_not_mutated(raw_rows):
    before = raw_rows.copy()
    normalize_language_percentages(raw_rows)
    assert_geodataframe_equal(raw_rows, before)


def test_geometry_carried_unchanged(raw_rows, normalized):
    raw_geom = raw_rows.drop_duplicates("GEOID").set_index("GEOID")["geometry"]
    for _, row in normalized.iterrows():
        assert row["geometry"].equals(raw_geom[row["GEOID"]])
    assert normalized.crs == raw_rows.crs


def test_plain_dataframe_without_geometry():
    rows = pd.DataFrame(make_rows({"Alpha": {"Total": 10, ENGLISH: 6, "Spanish": 2}}).drop(columns="geometry"))
    out = normalize_language_percentages(rows)
    assert out.iloc[0]["percent"] == 50.0


def test_available_languages_sorted(normalized):
    assert available_languages(normalized) == ["Korean", "Spanish", "Tagalog (incl. Filipino)"]


def test_summarize_language(normalized):
    s = summarize_language(normalized, "Spanish")
    assert s["counties"] == 3
    assert s["top_county"] == "Alpha"
    assert summarize_language(normalized, "Klingon")["counties"] == 0


# --- Build artifact checks ---

@pytest.fixture(scope="module")
def snapshot():
    if not os.path.exists(SNAPSHOT_PATH):
        pytest.skip("Normalized snapshot not found — run build_map.py first")
    from utils.table_source import load_snapshot
    return load_snapshot(SNAPSHOT_PATH)


def test_snapshot_county_count(snapshot):
    """California has 58 counties."""
    assert snapshot["GEOID"].nunique() == 58


def test_snapshot_geoid_format(snapshot):
    for geoid in snapshot["GEOID"]:
        assert len(geoid) == 5 and geoid.startswith(config.STATE_FIPS), f"Bad GEOID {geoid}"


def test_snapshot_percent_range(snapshot):
    assert (snapshot["percent"] >= 0).all()
    assert (snapshot["percent"] <= 100).all()
