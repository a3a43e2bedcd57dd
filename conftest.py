"""Global pytest configuration and fixtures."""

from pathlib import Path

import pandas as pd
import pytest

from woolmap.core.schema import load_jsonl_to_dataframe


@pytest.fixture
def source_tree_root() -> Path:
    """Return the root of the source tree."""
    # Get the directory of this conftest.py file, which should be at the root
    return Path(__file__).parent


@pytest.fixture
def test_data_dir(source_tree_root: Path) -> Path:
    return source_tree_root / "test_data"


@pytest.fixture
def sample_sales_path(test_data_dir: Path) -> Path:
    """An auction with nested and flat records, a province with more than ten sales,
    plus sales from Lesotho and from outside the map."""
    return test_data_dir / "sample_auction.jsonl"


@pytest.fixture
def sample_sales_df(sample_sales_path: Path) -> pd.DataFrame:
    return load_jsonl_to_dataframe(sample_sales_path)
