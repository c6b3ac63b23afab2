"""
Monotonic smoothing service for the progress trajectory pipeline.

Produces a dense, monotonic curve per contract so that trajectories can be
drawn as smooth "swimmer" paths that never move backwards in completion.

Algorithm (per contract):
    1. Drop observations with undefined percentages and order by pct_time.
    2. Collapse observations sharing a pct_time value (completion and
       months_ago averaged).
    3. Take the running maximum of completion so that noise in the raw data
       cannot produce a dip.
    4. Resample n points evenly over [min(pct_time), max(pct_time)] with a
       PCHIP (monotone cubic Hermite) interpolant for completion and linear
       interpolation for months_ago (held constant when the contract has a
       single distinct months_ago).

A contract with fewer than 2 distinct pct_time values is emitted unchanged
(smoothed = False); this is a fallback, not an error.

The curve table also carries a cosmetic "thickness" weight, rescaled from
months_ago so that recent segments are thicker.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.interpolate import PchipInterpolator

from progress_trajectory.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

CURVE_COLUMNS: List[str] = [
    'contract_id',
    'point_index',
    'pct_time',
    'pct_complete',
    'months_ago',
    'smoothed',
]


def rescale(values: Sequence[float], to: Tuple[float, float] = (0.0, 1.0)) -> np.ndarray:
    """
    Linearly map values onto the range `to`.

    Values spanning a zero-width range map to the midpoint of `to`; NaN stays NaN.

    Example:
        >>> rescale([0, 5, 10], to=(0.2, 1.2)).tolist()
        [0.2, 0.7, 1.2]
    """
    arr = np.asarray(values, dtype='float64')
    low, high = to
    if arr.size == 0 or np.all(np.isnan(arr)):
        return arr.copy()

    v_min, v_max = np.nanmin(arr), np.nanmax(arr)
    if v_max == v_min:
        return np.where(np.isnan(arr), np.nan, (low + high) / 2.0)
    return low + (arr - v_min) / (v_max - v_min) * (high - low)


def _raw_curve(contract_id: str, points: pd.DataFrame) -> pd.DataFrame:
    curve = pd.DataFrame({
        'contract_id': contract_id,
        'point_index': np.arange(len(points)),
        'pct_time': points['pct_time'].to_numpy(dtype='float64'),
        'pct_complete': points['pct_complete'].to_numpy(dtype='float64'),
        'months_ago': points['months_ago'].to_numpy(dtype='float64'),
        'smoothed': False,
    })
    return curve[CURVE_COLUMNS]


def smooth_contract(
    contract_id: str,
    series: pd.DataFrame,
    n_points: Optional[int] = None
) -> pd.DataFrame:
    """
    Build the dense monotonic curve of one contract.

    Args:
        contract_id: Identifier of the contract.
        series: The contract's rows with pct_time, pct_complete, months_ago.
        n_points: Resample size (default: Settings.smoothing_points).

    Returns:
        DataFrame with CURVE_COLUMNS ordered by point_index. Completion is
        non-decreasing along point_index whenever smoothed is True.
    """
    if n_points is None:
        n_points = get_settings().smoothing_points
    if n_points < 2:
        raise ValueError(f"n_points must be at least 2, got {n_points}")

    points = (
        series.dropna(subset=['pct_time', 'pct_complete'])
        .sort_values(['pct_time', 'months_ago'], ascending=[True, False], kind='mergesort')
    )
    if points.empty:
        logger.debug(f"No placeable observations for {contract_id}; empty curve")
        return pd.DataFrame(columns=CURVE_COLUMNS)

    collapsed = points.groupby('pct_time', sort=True).agg(
        pct_complete=('pct_complete', 'mean'),
        months_ago=('months_ago', 'mean'),
    )
    if len(collapsed) < 2:
        return _raw_curve(contract_id, points)

    x = collapsed.index.to_numpy(dtype='float64')
    y = np.maximum.accumulate(collapsed['pct_complete'].to_numpy(dtype='float64'))
    if not np.array_equal(y, collapsed['pct_complete'].to_numpy(dtype='float64')):
        logger.debug(f"Completion dips flattened for {contract_id}")

    x_new = np.linspace(x[0], x[-1], n_points)
    y_new = np.maximum.accumulate(PchipInterpolator(x, y)(x_new))

    if points['months_ago'].nunique() > 1:
        m_new = np.interp(x_new, x, collapsed['months_ago'].to_numpy(dtype='float64'))
    else:
        m_new = np.full(n_points, float(points['months_ago'].iloc[0]))

    curve = pd.DataFrame({
        'contract_id': contract_id,
        'point_index': np.arange(n_points),
        'pct_time': x_new,
        'pct_complete': y_new,
        'months_ago': m_new,
        'smoothed': True,
    })
    return curve[CURVE_COLUMNS]


def smooth_trajectories(
    df: pd.DataFrame,
    n_points: Optional[int] = None,
    settings: Optional[Settings] = None
) -> pd.DataFrame:
    """
    Build the smoothed curve table for every contract.

    Args:
        df: Derived table with contract_id, months_ago, pct_time, pct_complete.
        n_points: Resample size (default: settings.smoothing_points).
        settings: Settings override (default: get_settings()).

    Returns:
        Concatenated curves keyed by (contract_id, point_index) with a
        thickness column in [thickness_min, thickness_max]; thicker means more
        recent relative to the oldest observation in the input table.
    """
    if settings is None:
        settings = get_settings()
    if n_points is None:
        n_points = settings.smoothing_points
    curves = [
        smooth_contract(str(contract_id), series, n_points)
        for contract_id, series in df.groupby('contract_id', sort=True)
    ]
    curves = [c for c in curves if not c.empty]

    if not curves:
        return pd.DataFrame(columns=CURVE_COLUMNS + ['thickness'])

    smoothed = pd.concat(curves, ignore_index=True)
    smoothed['smoothed'] = smoothed['smoothed'].astype(bool)

    reference_max = float(df['months_ago'].max())
    smoothed['thickness'] = rescale(
        reference_max - smoothed['months_ago'].to_numpy(dtype='float64'),
        to=(settings.thickness_min, settings.thickness_max),
    )

    logger.info(
        f"Smoothed {smoothed['contract_id'].nunique()} contracts into {len(smoothed)} points "
        f"({int((~smoothed.groupby('contract_id')['smoothed'].first()).sum())} raw fallbacks)"
    )
    return smoothed


__all__ = [
    'CURVE_COLUMNS',
    'rescale',
    'smooth_contract',
    'smooth_trajectories',
]
