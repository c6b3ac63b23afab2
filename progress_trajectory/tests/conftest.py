"""
Pytest Configuration and Shared Fixtures for Progress Trajectory Tests.

This module provides fixtures and helpers shared by all pipeline tests:
- Raw snapshot tables (string cells, as read from CSV) for loader tests
- Typed snapshot tables for derivation, aggregation and trajectory tests
- Parent/child hierarchies for aggregation tests
- Settings isolation so environment variables never leak between tests

Dependency References:
- progress_trajectory/core/config.py: get_settings for pipeline configuration
- progress_trajectory/services/ingestion.py: load_snapshot_frame for typed tables
"""

from typing import Any, Dict, Generator, List

import numpy as np
import pandas as pd
import pytest

from progress_trajectory.core.config import get_settings
from progress_trajectory.services.ingestion import load_snapshot_frame


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )


# ============================================================
# SETTINGS ISOLATION
# ============================================================

@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """
    Clear the cached settings before and after every test.

    Tests that set environment variables with monkeypatch get a fresh
    Settings instance, and later tests never see their overrides.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================
# RAW SNAPSHOT FIXTURES
# ============================================================

def make_raw_row(
    contract_id: str,
    months_ago: int,
    snapshot_date: str,
    start_date: str = '2023-01-01',
    end_date: str = '2024-01-01',
    budget: Any = '1000000',
    work_done: Any = '0'
) -> Dict[str, str]:
    """
    Build one raw snapshot row with every cell as text.

    Returns:
        Dict[str, str]: Row keyed by the canonical column names
    """
    return {
        'contract_id': contract_id,
        'months_ago': str(months_ago),
        'snapshot_date': snapshot_date,
        'start_date': start_date,
        'end_date': end_date,
        'budget': str(budget),
        'work_done': str(work_done),
    }


@pytest.fixture
def raw_snapshot_data() -> pd.DataFrame:
    """
    Raw snapshot table for two contracts with three monthly snapshots each.

    Cells are strings, exactly as produced by reading a CSV with dtype=str.

    Contracts:
        - ALPHA: 2023-01-01 .. 2024-01-01, steady progress
        - BETA: 2022-01-01 .. 2023-06-15, overdue at the latest snapshot
    """
    rows: List[Dict[str, str]] = [
        make_raw_row('ALPHA', 2, '2023-05-01', budget='1000000', work_done='200000'),
        make_raw_row('ALPHA', 1, '2023-06-01', budget='1000000', work_done='300000'),
        make_raw_row('ALPHA', 0, '2023-07-01', budget='1000000', work_done='450000'),
        make_raw_row('BETA', 2, '2023-05-01', '2022-01-01', '2023-06-15', '500000', '300000'),
        make_raw_row('BETA', 1, '2023-06-01', '2022-01-01', '2023-06-15', '500000', '320000'),
        make_raw_row('BETA', 0, '2023-07-01', '2022-01-01', '2023-06-15', '500000', '330000'),
    ]
    return pd.DataFrame(rows)


@pytest.fixture
def snapshot_data(raw_snapshot_data: pd.DataFrame) -> pd.DataFrame:
    """Typed snapshot table loaded from raw_snapshot_data."""
    return load_snapshot_frame(raw_snapshot_data, '/')


@pytest.fixture
def hierarchy_data() -> pd.DataFrame:
    """
    Typed snapshot table with a parent ("P") and one child ("P/X").

    The parent carries the authoritative dates; the child leaves them blank.
    At months_ago=0 the parent has budget 800 and the child budget 200.
    """
    rows: List[Dict[str, str]] = [
        make_raw_row('P', 1, '2023-06-01', budget='800', work_done='100'),
        make_raw_row('P', 0, '2023-07-01', budget='800', work_done='300'),
        make_raw_row('P/X', 1, '2023-06-01', '', '', budget='200', work_done='50'),
        make_raw_row('P/X', 0, '2023-07-01', '', '', budget='200', work_done='100'),
    ]
    return load_snapshot_frame(pd.DataFrame(rows), '/')


@pytest.fixture
def trajectory_series() -> pd.DataFrame:
    """
    Derived rows of one contract moving from (10%, 5%) to (80%, 60%).
    """
    return pd.DataFrame({
        'contract_id': ['A', 'A', 'A'],
        'months_ago': [3, 1, 0],
        'pct_time': [10.0, 60.0, 80.0],
        'pct_complete': [5.0, 40.0, 60.0],
    })


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def create_csv_bytes(df: pd.DataFrame) -> bytes:
    """
    Convert DataFrame to CSV bytes for loader testing.

    Args:
        df: pandas DataFrame to convert

    Returns:
        bytes: UTF-8 encoded CSV content

    Example:
        csv_bytes = create_csv_bytes(raw_snapshot_data)
        df = load_snapshots_csv(csv_bytes)
    """
    return df.to_csv(index=False).encode('utf-8')


def assert_non_decreasing(values: Any, tolerance: float = 1e-9) -> None:
    """
    Assert a sequence never decreases (up to floating point tolerance).
    """
    arr = np.asarray(values, dtype='float64')
    if arr.size < 2:
        return
    drops = np.diff(arr)
    assert (drops >= -tolerance).all(), f"Sequence decreases: min step {drops.min()}"


__all__ = [
    'make_raw_row',
    'create_csv_bytes',
    'assert_non_decreasing',
]
