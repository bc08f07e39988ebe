"""Tests for selecting and cleaning the language variables."""
import os
import sys

import pandas as pd
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from utils.errors import DataQualityError, DuplicateLabelError
from utils.variables import catalog_to_frame, clean_label, select_language_variables

CATALOG = {
    "C16001_001E": "Estimate!!Total:",
    "C16001_002E": "Estimate!!Total:!!Speak only English",
    "C16001_003E": "Estimate!!Total:!!Spanish:",
    "C16001_004E": "Estimate!!Total:!!Spanish:!!Speak English \"very well\"",
    "C16001_005E": "Estimate!!Total:!!Spanish:!!Speak English less than \"very well\"",
    "C16001_030E": "Estimate!!Total:!!Tagalog (incl. Filipino):",
    "C16001_001M": "Margin of Error!!Total:",
    "C16001_003EA": "Annotation of Estimate!!Total:!!Spanish:",
    "B01003_001E": "Estimate!!Total",
    "C16002_001E": "Estimate!!Total:",
}


def test_selects_language_table_estimates_only():
    selected = select_language_variables(CATALOG)
    assert set(selected.values()) == {"C16001_001E", "C16001_002E", "C16001_003E", "C16001_030E"}


def test_labels_cleaned():
    selected = select_language_variables(CATALOG)
    assert selected == {
        "Total": "C16001_001E",
        "Speak only English": "C16001_002E",
        "Spanish": "C16001_003E",
        "Tagalog (incl. Filipino)": "C16001_030E",
    }


def test_proficiency_label_dropped_base_kept():
    catalog = [
        ("C16001_003E", "Estimate!!Total!!Spanish"),
        ("C16001_005E", "Estimate!!Total!!Spanish!!Speaks English less than very well"),
    ]
    assert select_language_variables(catalog) == {"Spanish": "C16001_003E"}


def test_pre_2019_label_format():
    assert clean_label("Estimate!!Total") == "Total"
    assert clean_label("Estimate!!Total!!Korean") == "Korean"
    assert clean_label("Estimate!!Total:!!Korean:") == "Korean"


def test_dataframe_catalog():
    df = pd.DataFrame({
        "name": list(CATALOG.keys()),
        "label": list(CATALOG.values()),
        "concept": "LANGUAGE SPOKEN AT HOME",
    })
    assert select_language_variables(df) == select_language_variables(CATALOG)


def test_duplicate_labels_raise():
    catalog = {
        "C16001_003E": "Estimate!!Total:!!Spanish:",
        "C16001_099E": "Estimate!!Total!!Spanish",
    }
    with pytest.raises(DuplicateLabelError) as excinfo:
        select_language_variables(catalog)
    assert excinfo.value.labels == ["Spanish"]
    assert isinstance(excinfo.value, DataQualityError)


def test_custom_table_prefix():
    catalog = {"B16001_001E": "Estimate!!Total:", "B16001_003E": "Estimate!!Total:!!Spanish:"}
    assert select_language_variables(catalog, table_prefix="B16001_") == {
        "Total": "B16001_001E",
        "Spanish": "B16001_003E",
    }


def test_catalog_missing_columns():
    with pytest.raises(ValueError):
        catalog_to_frame(pd.DataFrame({"code": ["C16001_001E"]}))


def test_pure_function():
    catalog = dict(CATALOG)
    select_language_variables(catalog)
    assert catalog == CATALOG
