from pathlib import Path

import pytest

from calcfinder.catalog_build import load_catalog_items
from calcfinder.catalog_index import CatalogIndex, CatalogItem

SAMPLE_CATALOG = Path(__file__).resolve().parents[1] / "data" / "catalog.json"


@pytest.fixture
def two_items():
    return [
        CatalogItem(
            identifier="bmi-calculator",
            display_name="BMI Calculator",
            description="Calculate body mass index from height and weight",
            category="health",
        ),
        CatalogItem(
            identifier="mortgage-calculator",
            display_name="Mortgage Calculator",
            description="Estimate monthly mortgage payments",
            category="finance",
        ),
    ]


@pytest.fixture
def two_item_index(two_items):
    return CatalogIndex.build(two_items)


@pytest.fixture
def sample_items():
    return load_catalog_items(SAMPLE_CATALOG)


@pytest.fixture
def sample_index(sample_items):
    return CatalogIndex.build(sample_items)
