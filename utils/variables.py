"""
California Languages Explorer — Variable Selection
Picks the language-spoken-at-home estimates out of the ACS variable catalog
and cleans their labels.
"""
import logging
import re
from collections.abc import Iterable, Mapping

import pandas as pd

from utils.errors import DuplicateLabelError

logger = logging.getLogger(__name__)

TOTAL_LABEL = "Total"

# "Estimate!!Total" (<= 2018) and "Estimate!!Total:" (2019+)
_TOTAL_RE = re.compile(r"^Estimate!!Total:?$")
_PREFIX_RE = re.compile(r"^Estimate!!Total:?!!")


def catalog_to_frame(catalog) -> pd.DataFrame:
    """
    Coerce a variable catalog into a DataFrame with `name` and `label` columns.

    Accepts a DataFrame, a {code: label} mapping, or an iterable of
    (code, label) pairs.
    """
    if isinstance(catalog, pd.DataFrame):
        df = catalog
    elif isinstance(catalog, Mapping):
        df = pd.DataFrame({"name": list(catalog.keys()), "label": list(catalog.values())})
    elif isinstance(catalog, Iterable):
        df = pd.DataFrame(list(catalog), columns=["name", "label"])
    else:
        raise TypeError(f"Unsupported catalog type: {type(catalog).__name__}")

    missing = {"name", "label"} - set(df.columns)
    if missing:
        raise ValueError(f"Variable catalog is missing columns: {sorted(missing)}")
    return df[["name", "label"]].astype(str)


def clean_label(label: str) -> str:
    """Collapse the total-population label to 'Total', strip boilerplate from the rest."""
    label = label.strip()
    if _TOTAL_RE.match(label):
        return TOTAL_LABEL
    return _PREFIX_RE.sub("", label).rstrip(":").strip()


def is_language_variable(code: str, table_prefix: str) -> bool:
    """Estimate columns of the table only (C16001_003E, not ..._003M or ..._003EA)."""
    return re.fullmatch(re.escape(table_prefix) + r"\d{3}E", code) is not None


def select_language_variables(
    catalog,
    table_prefix: str = "C16001_",
    proficiency_marker: str = "very well",
) -> dict[str, str]:
    """
    Select the language variables from a variable catalog.

    Proficiency sub-splits ("Speak English less than 'very well'") are
    dropped so each language appears once. Returns {clean_label: code}.
    Raises DuplicateLabelError if two variables clean to the same label.
    """
    df = catalog_to_frame(catalog)

    df = df[df["name"].apply(lambda code: is_language_variable(code, table_prefix))]
    df = df[~df["label"].str.contains(proficiency_marker, case=False, regex=False)]

    labels = df["label"].apply(clean_label)
    dupes = labels[labels.duplicated()].unique().tolist()
    if dupes:
        raise DuplicateLabelError(dupes)

    selected = dict(zip(labels, df["name"]))
    logger.info(f"Selected {len(selected)} language variables from table {table_prefix.rstrip('_')}")
    return selected
