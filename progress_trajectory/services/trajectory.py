"""
Trajectory analysis service for the progress trajectory pipeline.

Summarises each contract's path through (pct_time, pct_complete) space as a
straight line from its oldest snapshot to its most recent one.

Key Outputs (one set per contract, broadcast to all of its rows):
    - x1, y1: (pct_time, pct_complete) at the maximum months_ago
    - x2, y2: (pct_time, pct_complete) at months_ago == 0
    - slope = (y2 - y1) / (x2 - x1)
    - angle = atan(slope), in degrees
    - prediction = y2 + slope * (100 - x2), the completion % linearly
      extrapolated to 100% elapsed time

Edge Cases:
    - Zero time delta (including single-snapshot contracts) or undefined
      endpoints: slope, angle and prediction are undefined and an
      UndefinedSlope issue is reported. They are never reported as 0.
    - Several rows at the same months_ago: the first in sort order is used and
      a DuplicateSnapshot issue is reported.
    - No months_ago == 0 row: MissingCurrentSnapshot issue, slope undefined.

Each contract is analysed from its own rows only; no state is shared between
contracts.
"""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from progress_trajectory.core.config import get_settings
from progress_trajectory.models import (
    ExtrapolationLine,
    IssueSeverity,
    IssueType,
    PipelineIssue,
    ScheduleStatus,
    TrajectorySummary,
)

logger = logging.getLogger(__name__)

# Target time percentage for the linear prediction
DEADLINE_PCT: float = 100.0

SUMMARY_COLUMNS: List[str] = [
    'contract_id', 'x1', 'y1', 'x2', 'y2', 'slope', 'angle', 'prediction', 'slope_defined',
]

# Columns copied onto every row of a contract by attach_trajectories
BROADCAST_COLUMNS: List[str] = ['x1', 'y1', 'x2', 'y2', 'slope', 'angle', 'prediction']


# =============================================================================
# Per-Contract Analysis
# =============================================================================


def _point(row: Optional[pd.Series]) -> Tuple[float, float]:
    if row is None:
        return (math.nan, math.nan)
    return (float(row['pct_time']), float(row['pct_complete']))


def _duplicate_issues(contract_id: str, ordered: pd.DataFrame) -> List[PipelineIssue]:
    issues: List[PipelineIssue] = []
    counts = ordered['months_ago'].value_counts()
    for months_ago, count in sorted(counts[counts > 1].items()):
        message = (
            f"Contract {contract_id} has {count} rows at months_ago={months_ago}; "
            f"using the first in sort order"
        )
        logger.warning(message)
        issues.append(PipelineIssue(
            issue_type=IssueType.DUPLICATE_SNAPSHOT,
            severity=IssueSeverity.WARNING,
            contract_id=contract_id,
            months_ago=int(months_ago),
            message=message,
        ))
    return issues


def analyze_contract(
    contract_id: str,
    series: pd.DataFrame
) -> Tuple[TrajectorySummary, List[PipelineIssue]]:
    """
    Compute the linear trajectory of one contract.

    Args:
        contract_id: Identifier of the contract being analysed.
        series: The contract's derived rows (months_ago, pct_time, pct_complete).

    Returns:
        Tuple of (TrajectorySummary, issues raised for this contract).

    Example:
        >>> series = pd.DataFrame({
        ...     'months_ago': [3, 0],
        ...     'pct_time': [10.0, 80.0],
        ...     'pct_complete': [5.0, 60.0],
        ... })
        >>> summary, _ = analyze_contract("A", series)
        >>> round(summary.slope, 4), round(summary.prediction, 2)
        (0.7857, 75.71)
    """
    ordered = series.sort_values('months_ago', kind='mergesort')
    issues = _duplicate_issues(contract_id, ordered)

    current_rows = ordered[ordered['months_ago'] == 0]
    current = current_rows.iloc[0] if not current_rows.empty else None
    oldest_rows = ordered[ordered['months_ago'] == ordered['months_ago'].max()]
    oldest = oldest_rows.iloc[0]

    if current is None:
        message = f"Contract {contract_id} has no months_ago=0 snapshot; trajectory undefined"
        logger.warning(message)
        issues.append(PipelineIssue(
            issue_type=IssueType.MISSING_CURRENT_SNAPSHOT,
            severity=IssueSeverity.WARNING,
            contract_id=contract_id,
            message=message,
        ))

    x1, y1 = _point(oldest)
    x2, y2 = _point(current)
    dx = x2 - x1

    if any(math.isnan(v) for v in (x1, y1, x2, y2)) or dx == 0:
        if current is not None:
            reason = "zero time delta" if dx == 0 else "undefined endpoint percentages"
            message = f"Slope undefined for contract {contract_id}: {reason}"
            logger.warning(message)
            issues.append(PipelineIssue(
                issue_type=IssueType.UNDEFINED_SLOPE,
                severity=IssueSeverity.WARNING,
                contract_id=contract_id,
                message=message,
            ))
        summary = TrajectorySummary(contract_id=contract_id, x1=x1, y1=y1, x2=x2, y2=y2)
        return summary, issues

    slope = (y2 - y1) / dx
    summary = TrajectorySummary(
        contract_id=contract_id,
        x1=x1,
        y1=y1,
        x2=x2,
        y2=y2,
        slope=slope,
        angle=math.degrees(math.atan(slope)),
        prediction=y2 + slope * (DEADLINE_PCT - x2),
        slope_defined=True,
    )
    return summary, issues


# =============================================================================
# Table Operations
# =============================================================================


def compute_trajectories(df: pd.DataFrame) -> Tuple[pd.DataFrame, List[PipelineIssue]]:
    """
    Analyse every contract of a derived table.

    Args:
        df: Derived table with contract_id, months_ago, pct_time, pct_complete.

    Returns:
        Tuple of (one row per contract with SUMMARY_COLUMNS, issues).
        Undefined values are NaN in the returned table.
    """
    records = []
    issues: List[PipelineIssue] = []

    for contract_id, series in df.groupby('contract_id', sort=True):
        summary, contract_issues = analyze_contract(str(contract_id), series)
        records.append(summary.model_dump())
        issues.extend(contract_issues)

    summary_df = pd.DataFrame.from_records(records, columns=SUMMARY_COLUMNS)
    numeric = [c for c in SUMMARY_COLUMNS if c not in ('contract_id', 'slope_defined')]
    summary_df[numeric] = summary_df[numeric].astype('float64')
    summary_df['slope_defined'] = summary_df['slope_defined'].astype(bool)

    logger.info(
        f"Computed trajectories for {len(summary_df)} contracts "
        f"({int(summary_df['slope_defined'].sum())} with defined slope)"
    )
    return summary_df, issues


def attach_trajectories(df: pd.DataFrame, summary: pd.DataFrame) -> pd.DataFrame:
    """
    Broadcast each contract's trajectory onto every one of its rows.

    Args:
        df: Derived table.
        summary: Output of compute_trajectories.

    Returns:
        New DataFrame with BROADCAST_COLUMNS added (identical within a contract).
    """
    base = df.drop(columns=[c for c in BROADCAST_COLUMNS if c in df.columns])
    return base.merge(
        summary[['contract_id'] + BROADCAST_COLUMNS],
        on='contract_id',
        how='left',
        validate='many_to_one',
    )


def extrapolation_lines(summary: pd.DataFrame) -> List[ExtrapolationLine]:
    """
    Build the overlay line of every contract, from (x1, y1) to (100, prediction).

    Args:
        summary: Output of compute_trajectories.

    Returns:
        One ExtrapolationLine per contract; undefined values are None.
    """
    return [
        ExtrapolationLine(
            contract_id=row.contract_id,
            angle=row.angle,
            prediction=row.prediction,
            x1=row.x1,
            y1=row.y1,
            x_end=DEADLINE_PCT,
            y_end=row.prediction,
        )
        for row in summary.itertuples(index=False)
    ]


# =============================================================================
# Schedule Position
# =============================================================================


def classify_schedule_status(
    pct_time: float,
    pct_complete: float,
    tolerance: Optional[float] = None,
    stalled_threshold: Optional[float] = None
) -> ScheduleStatus:
    """
    Place one observation relative to the ideal diagonal (completion = time).

    Args:
        pct_time: Percentage of contract time elapsed.
        pct_complete: Percentage of work completed.
        tolerance: Half-width of the on-track band in percentage points
            (default: Settings.on_track_tolerance).
        stalled_threshold: Completion % at or below which a started contract
            is stalled (default: Settings.stalled_completion_threshold).

    Returns:
        ScheduleStatus for the observation.

    Example:
        >>> classify_schedule_status(50.0, 80.0)
        <ScheduleStatus.AHEAD: 'ahead'>
    """
    settings = get_settings()
    if tolerance is None:
        tolerance = settings.on_track_tolerance
    if stalled_threshold is None:
        stalled_threshold = settings.stalled_completion_threshold

    if pct_time is None or pct_complete is None or np.isnan(pct_time) or np.isnan(pct_complete):
        return ScheduleStatus.UNKNOWN
    if pct_time > DEADLINE_PCT:
        return ScheduleStatus.OVERDUE
    if pct_time > 0 and pct_complete <= stalled_threshold:
        return ScheduleStatus.STALLED

    gap = pct_complete - pct_time
    if gap > tolerance:
        return ScheduleStatus.AHEAD
    if gap < -tolerance:
        return ScheduleStatus.BEHIND
    return ScheduleStatus.ON_TRACK


__all__ = [
    'DEADLINE_PCT',
    'SUMMARY_COLUMNS',
    'BROADCAST_COLUMNS',
    'analyze_contract',
    'compute_trajectories',
    'attach_trajectories',
    'extrapolation_lines',
    'classify_schedule_status',
]
