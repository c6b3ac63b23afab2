"""
Test Module for the Monotonic Smoother.

Verifies that smoothed completion never decreases, that the resampled curve
spans the observed time range, the raw fallback for contracts with fewer than
two distinct time values, and the recency thickness weights.
"""

import numpy as np
import pandas as pd
import pytest

from progress_trajectory.core.config import Settings
from progress_trajectory.services.smoothing import (
    CURVE_COLUMNS,
    rescale,
    smooth_contract,
    smooth_trajectories,
)
from progress_trajectory.tests.conftest import assert_non_decreasing


def _series(pct_time, pct_complete, months_ago=None) -> pd.DataFrame:
    if months_ago is None:
        months_ago = list(range(len(pct_time) - 1, -1, -1))
    return pd.DataFrame({
        'months_ago': months_ago,
        'pct_time': pct_time,
        'pct_complete': pct_complete,
    })


# =============================================================================
# Test Class: rescale
# =============================================================================

class TestRescale:

    def test_linear_mapping(self):
        assert rescale([0, 5, 10], to=(0.2, 1.2)).tolist() == pytest.approx([0.2, 0.7, 1.2])

    def test_zero_width_maps_to_midpoint(self):
        assert rescale([3, 3], to=(0.2, 1.2)).tolist() == pytest.approx([0.7, 0.7])

    def test_nan_preserved(self):
        result = rescale([0.0, np.nan, 10.0])
        assert np.isnan(result[1])
        assert result[2] == 1.0

    def test_empty(self):
        assert rescale([]).size == 0


# =============================================================================
# Test Class: smooth_contract
# =============================================================================

class TestSmoothContract:
    """
    Tests for the per-contract curve.
    """

    def test_monotonic_with_noisy_input(self):
        series = _series(
            [5.0, 15.0, 25.0, 35.0, 45.0, 55.0],
            [2.0, 12.0, 9.0, 30.0, 28.0, 50.0],
        )
        curve = smooth_contract('N', series, n_points=100)

        assert list(curve.columns) == CURVE_COLUMNS
        assert len(curve) == 100
        assert curve['smoothed'].all()
        assert_non_decreasing(curve['pct_complete'])

    def test_monotonic_over_random_series(self):
        rng = np.random.default_rng(11)
        for _ in range(25):
            n = int(rng.integers(2, 12))
            pct_time = np.sort(rng.uniform(0, 120, n))
            pct_complete = rng.uniform(0, 100, n)
            curve = smooth_contract('R', _series(pct_time, pct_complete), n_points=50)
            assert_non_decreasing(curve['pct_complete'])

    def test_spans_observed_time(self):
        series = _series([10.0, 40.0, 80.0], [5.0, 30.0, 60.0])
        curve = smooth_contract('A', series, n_points=20)

        assert curve['pct_time'].iloc[0] == pytest.approx(10.0)
        assert curve['pct_time'].iloc[-1] == pytest.approx(80.0)
        assert curve['pct_complete'].iloc[0] == pytest.approx(5.0)
        assert curve['pct_complete'].iloc[-1] == pytest.approx(60.0)
        assert curve['point_index'].tolist() == list(range(20))

    def test_months_ago_interpolated(self):
        series = _series([10.0, 30.0], [5.0, 25.0], months_ago=[2, 0])
        curve = smooth_contract('A', series, n_points=5)

        assert curve['months_ago'].tolist() == pytest.approx([2.0, 1.5, 1.0, 0.5, 0.0])

    def test_single_months_ago_held_constant(self):
        series = _series([10.0, 30.0], [5.0, 25.0], months_ago=[0, 0])
        curve = smooth_contract('A', series, n_points=4)

        assert curve['months_ago'].tolist() == [0.0] * 4

    def test_tied_time_values_averaged(self):
        series = _series([10.0, 10.0, 30.0], [4.0, 8.0, 20.0], months_ago=[2, 1, 0])
        curve = smooth_contract('T', series, n_points=3)

        assert curve['pct_complete'].iloc[0] == pytest.approx(6.0)
        assert curve['months_ago'].iloc[0] == pytest.approx(1.5)

    def test_single_point_fallback(self):
        curve = smooth_contract('S', _series([40.0], [20.0]), n_points=100)

        assert len(curve) == 1
        assert not curve['smoothed'].any()
        assert curve['pct_complete'].tolist() == [20.0]

    def test_single_distinct_time_fallback(self):
        series = _series([0.0, 0.0], [0.0, 5.0], months_ago=[1, 0])
        curve = smooth_contract('Z', series, n_points=100)

        assert len(curve) == 2
        assert not curve['smoothed'].any()

    def test_undefined_rows_dropped(self):
        series = _series([10.0, np.nan, 50.0], [5.0, 10.0, 30.0])
        curve = smooth_contract('U', series, n_points=10)

        assert len(curve) == 10
        assert not curve['pct_time'].isna().any()

    def test_all_undefined_gives_empty_curve(self):
        curve = smooth_contract('E', _series([np.nan], [np.nan]), n_points=10)
        assert curve.empty

    def test_n_points_validated(self):
        with pytest.raises(ValueError):
            smooth_contract('A', _series([10.0, 20.0], [1.0, 2.0]), n_points=1)

    def test_n_points_from_settings(self, monkeypatch):
        monkeypatch.setenv('SMOOTHING_POINTS', '7')
        curve = smooth_contract('A', _series([10.0, 20.0], [1.0, 2.0]))
        assert len(curve) == 7


# =============================================================================
# Test Class: smooth_trajectories
# =============================================================================

class TestSmoothTrajectories:
    """
    Tests for the concatenated curve table.
    """

    @pytest.fixture
    def derived(self) -> pd.DataFrame:
        return pd.DataFrame({
            'contract_id': ['A', 'A', 'A', 'B', 'B', 'C'],
            'months_ago': [4, 2, 0, 2, 0, 0],
            'pct_time': [10.0, 30.0, 50.0, 60.0, 70.0, 20.0],
            'pct_complete': [5.0, 10.0, 40.0, 65.0, 70.0, 1.0],
        })

    def test_curves_per_contract(self, derived):
        smoothed = smooth_trajectories(derived, n_points=10)

        sizes = smoothed.groupby('contract_id').size().to_dict()
        assert sizes == {'A': 10, 'B': 10, 'C': 1}
        flags = smoothed.groupby('contract_id')['smoothed'].first().to_dict()
        assert flags == {'A': True, 'B': True, 'C': False}

    def test_every_curve_non_decreasing(self, derived):
        smoothed = smooth_trajectories(derived, n_points=25)
        for _, curve in smoothed.groupby('contract_id'):
            assert_non_decreasing(curve.sort_values('point_index')['pct_complete'])

    def test_thickness_range(self, derived):
        smoothed = smooth_trajectories(derived, n_points=10)

        assert smoothed['thickness'].min() == pytest.approx(0.2)
        assert smoothed['thickness'].max() == pytest.approx(1.2)
        oldest = smoothed[smoothed['months_ago'] == 4]
        assert oldest['thickness'].tolist() == pytest.approx([0.2])

    def test_thickness_single_month(self):
        df = pd.DataFrame({
            'contract_id': ['A'],
            'months_ago': [0],
            'pct_time': [30.0],
            'pct_complete': [10.0],
        })
        smoothed = smooth_trajectories(df, n_points=10)
        assert smoothed['thickness'].tolist() == pytest.approx([0.7])

    def test_empty_input(self):
        empty = pd.DataFrame(columns=['contract_id', 'months_ago', 'pct_time', 'pct_complete'])
        smoothed = smooth_trajectories(empty, n_points=10)

        assert smoothed.empty
        assert 'thickness' in smoothed.columns

    def test_thickness_range_from_settings(self, derived):
        settings = Settings(thickness_min=1.0, thickness_max=3.0, smoothing_points=4)
        smoothed = smooth_trajectories(derived, settings=settings)

        assert smoothed.groupby('contract_id').size().to_dict() == {'A': 4, 'B': 4, 'C': 1}
        assert smoothed['thickness'].min() == pytest.approx(1.0)
        assert smoothed['thickness'].max() == pytest.approx(3.0)
