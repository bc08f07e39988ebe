"""
California Languages Explorer — Data Preparation
Turns raw (county, variable) estimates into the percent of non-English
speakers in each county who speak each language.
"""
import logging

import geopandas as gpd
import numpy as np
import pandas as pd

from utils.errors import DataQualityError, MissingCountyTotal

logger = logging.getLogger(__name__)

TOTAL_LABEL = "Total"
ENGLISH_MARKER = "English"

OUTPUT_COLUMNS = [
    "GEOID", "NAME", "variable", "estimate", "geometry",
    "non_english_total", "percent", "degenerate",
]


def partition_rows(rows: pd.DataFrame, total_label: str = TOTAL_LABEL,
                   english_marker: str = ENGLISH_MARKER) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Split rows into (totals, english, languages) by the `variable` column."""
    is_total = rows["variable"] == total_label
    is_english = ~is_total & rows["variable"].str.contains(english_marker, regex=False)
    is_language = ~is_total & ~is_english
    return rows[is_total], rows[is_english], rows[is_language]


def _single_per_county(df: pd.DataFrame, kind: str) -> None:
    dupes = df["GEOID"][df["GEOID"].duplicated()].unique().tolist()
    if dupes:
        raise DataQualityError(
            f"{len(dupes)} counties have more than one {kind} row: {', '.join(sorted(dupes))}"
        )


def compute_non_english_totals(totals: pd.DataFrame, english: pd.DataFrame) -> pd.DataFrame:
    """
    One row per county: total respondents, English speakers, and the
    non-English denominator (total - english). Keyed on GEOID.
    """
    _single_per_county(totals, "Total")
    _single_per_county(english, "English")

    t = totals[["GEOID", "estimate"]].rename(columns={"estimate": "total"})
    e = english[["GEOID", "estimate"]].rename(columns={"estimate": "english"})
    denom = t.merge(e, on="GEOID", how="outer")
    denom["non_english_total"] = denom["total"] - denom["english"]

    negative = denom[denom["non_english_total"] < 0]
    if len(negative) > 0:
        logger.warning(
            f"{len(negative)} counties report more English speakers than respondents: "
            f"{', '.join(negative['GEOID'])}"
        )
    return denom


def percent_of(speakers, non_english_total) -> np.ndarray:
    """
    100 * speakers / non_english_total rounded to 2 dp (numpy.round:
    half-to-even). Zero denominators give 0.0.
    """
    speakers = np.asarray(speakers, dtype=float)
    denom = np.asarray(non_english_total, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        pct = np.where(denom != 0, 100.0 * speakers / denom, 0.0)
    return np.round(pct, 2)


def normalize_language_percentages(rows: pd.DataFrame, total_label: str = TOTAL_LABEL,
                                   english_marker: str = ENGLISH_MARKER) -> gpd.GeoDataFrame:
    """
    Compute, for every county and non-English language, the share of the
    county's non-English speakers who speak that language.

    Expects GEOID, NAME, variable, estimate and geometry columns. Returns one
    row per (county, language) with non_english_total, percent and a
    degenerate flag set where the county has no non-English speakers.

    Raises MissingCountyTotal when a county with language rows has no Total
    or no English row, and DataQualityError on duplicated rows.
    """
    missing_cols = {"GEOID", "NAME", "variable", "estimate"} - set(rows.columns)
    if missing_cols:
        raise DataQualityError(f"Input rows are missing columns: {sorted(missing_cols)}")

    df = rows.copy()
    df["GEOID"] = df["GEOID"].astype(str)
    df["estimate"] = pd.to_numeric(df["estimate"], errors="raise")

    # --- Step 1: Partition ---
    totals, english, languages = partition_rows(df, total_label, english_marker)
    logger.info(
        f"Partitioned {len(df)} rows: {len(totals)} totals, "
        f"{len(english)} English, {len(languages)} language rows"
    )

    dupes = languages[languages.duplicated(subset=["GEOID", "variable"])]
    if len(dupes) > 0:
        raise DataQualityError(
            f"{len(dupes)} duplicate (county, language) rows, e.g. "
            f"{dupes.iloc[0]['GEOID']} {dupes.iloc[0]['variable']}"
        )

    # --- Step 2: Denominators ---
    denom = compute_non_english_totals(totals, english)

    counties = set(languages["GEOID"])
    no_total = counties - set(denom.loc[denom["total"].notna(), "GEOID"])
    if no_total:
        raise MissingCountyTotal(list(no_total), total_label)
    no_english = counties - set(denom.loc[denom["english"].notna(), "GEOID"])
    if no_english:
        raise MissingCountyTotal(list(no_english), "English")

    # --- Step 3: Join denominator onto language rows ---
    out = languages.merge(
        denom[["GEOID", "non_english_total"]],
        on="GEOID",
        how="left",
        validate="many_to_one",
    )
    out["non_english_total"] = out["non_english_total"].astype(int)

    # --- Step 4: Percent ---
    out["degenerate"] = out["non_english_total"] == 0
    out["percent"] = percent_of(out["estimate"], out["non_english_total"])

    degenerate = out.loc[out["degenerate"], "GEOID"].unique()
    if len(degenerate) > 0:
        logger.warning(
            f"{len(degenerate)} counties have no non-English speakers; "
            f"percent set to 0: {', '.join(sorted(degenerate))}"
        )

    columns = [c for c in OUTPUT_COLUMNS if c in out.columns]
    out = out[columns].reset_index(drop=True)

    crs = rows.crs if isinstance(rows, gpd.GeoDataFrame) else None
    if "geometry" in out.columns:
        out = gpd.GeoDataFrame(out, geometry="geometry", crs=crs)
    else:
        out = gpd.GeoDataFrame(out)

    logger.info(
        f"Normalized {len(out)} rows for {out['GEOID'].nunique()} counties and "
        f"{out['variable'].nunique()} languages"
    )
    return out


def available_languages(table: pd.DataFrame) -> list[str]:
    """Distinct languages in the normalized table, sorted for display."""
    return sorted(table["variable"].dropna().unique().tolist())


def summarize_language(table: pd.DataFrame, language: str) -> dict:
    """Median percent and the county with the highest percent for one language."""
    subset = table[table["variable"] == language]
    if subset.empty:
        return {"language": language, "counties": 0, "median_percent": None, "top_county": None}
    top = subset.loc[subset["percent"].idxmax()]
    return {
        "language": language,
        "counties": len(subset),
        "median_percent": float(subset["percent"].median()),
        "top_county": top["NAME"],
        "top_percent": float(top["percent"]),
    }
