"""
Metric derivation service for the progress trajectory pipeline.

Turns raw (or aggregated) snapshot rows into time-normalized progress figures.

Derived Metrics:
- total_days = end_date - start_date
- days_passed = max(0, snapshot_date - start_date)
- pct_time = 100 * days_passed / total_days   (values > 100 mean overdue)
- pct_complete = 100 * work_done / budget      (unbounded above)
- overdue = pct_time > 100

Undefined values are never coerced:
- total_days <= 0 flags the row as malformed_date_range and leaves pct_time NaN;
  the whole contract is later excluded with a MalformedDateRange issue.
- A zero or missing budget flags undefined_completion and leaves pct_complete NaN.
- Missing start/end dates (unresolved parent dates after aggregation) flag
  dates_missing and leave pct_time NaN.

Every function returns a new table; inputs are never modified in place.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from progress_trajectory.models import IssueSeverity, IssueType, PipelineIssue

logger = logging.getLogger(__name__)

DERIVED_COLUMNS: List[str] = [
    'total_days',
    'days_passed',
    'pct_time',
    'pct_complete',
    'overdue',
    'malformed_date_range',
    'undefined_completion',
    'dates_missing',
]


# =============================================================================
# Per-Record Derivation
# =============================================================================


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def calculate_derived_metrics(
    snapshot_date: date,
    start_date: Optional[date],
    end_date: Optional[date],
    budget: Optional[float],
    work_done: Optional[float]
) -> Dict[str, Any]:
    """
    Calculate the derived metrics of a single snapshot record.

    Args:
        snapshot_date: Date of the observation.
        start_date: Contract start date (None when unresolved).
        end_date: Contract end date (None when unresolved).
        budget: Total contract budget.
        work_done: Cumulative work value.

    Returns:
        Dictionary with total_days, days_passed, pct_time, pct_complete,
        overdue and the malformed_date_range / undefined_completion /
        dates_missing flags. Undefined numbers are None.

    Example:
        >>> m = calculate_derived_metrics(
        ...     date(2023, 7, 2), date(2023, 1, 1), date(2024, 1, 1),
        ...     budget=1_000_000, work_done=500_000
        ... )
        >>> round(m['pct_time'], 2), m['pct_complete']
        (49.86, 50.0)
    """
    dates_missing = _is_missing(start_date) or _is_missing(end_date)

    total_days: Optional[int] = None
    days_passed: Optional[int] = None
    if not dates_missing:
        total_days = (end_date - start_date).days
        days_passed = max(0, (snapshot_date - start_date).days)
    elif not _is_missing(start_date):
        days_passed = max(0, (snapshot_date - start_date).days)

    malformed = total_days is not None and total_days <= 0
    pct_time = 100.0 * days_passed / total_days if total_days is not None and total_days > 0 else None

    completion_defined = (
        not _is_missing(budget) and budget != 0 and not _is_missing(work_done)
    )
    pct_complete = 100.0 * work_done / budget if completion_defined else None

    return {
        'total_days': total_days,
        'days_passed': days_passed,
        'pct_time': pct_time,
        'pct_complete': pct_complete,
        'overdue': pct_time is not None and pct_time > 100,
        'malformed_date_range': malformed,
        'undefined_completion': not completion_defined,
        'dates_missing': dates_missing,
    }


# =============================================================================
# Table Derivation
# =============================================================================


def add_derived_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Vectorised equivalent of calculate_derived_metrics over a whole table.

    Works on both raw snapshot tables and aggregated tables; any previously
    derived columns are recomputed.

    Args:
        df: Table with snapshot_date, start_date, end_date, budget, work_done.

    Returns:
        New DataFrame with DERIVED_COLUMNS added.
    """
    result = df.drop(columns=[c for c in DERIVED_COLUMNS if c in df.columns])

    start = pd.to_datetime(result['start_date'])
    end = pd.to_datetime(result['end_date'])
    snapshot = pd.to_datetime(result['snapshot_date'])

    total_days = (end - start).dt.days.astype('float64')
    days_passed = (snapshot - start).dt.days.astype('float64').clip(lower=0)
    dates_missing = start.isna() | end.isna()

    span_ok = total_days > 0
    pct_time = (100.0 * days_passed / total_days).where(span_ok, np.nan)

    budget = pd.to_numeric(result['budget'], errors='coerce')
    work = pd.to_numeric(result['work_done'], errors='coerce')
    completion_ok = budget.notna() & (budget != 0) & work.notna()
    pct_complete = (100.0 * work / budget.where(completion_ok)).where(completion_ok, np.nan)

    result['total_days'] = total_days
    result['days_passed'] = days_passed
    result['pct_time'] = pct_time
    result['pct_complete'] = pct_complete
    result['overdue'] = (pct_time > 100).fillna(False).astype(bool)
    result['malformed_date_range'] = (~dates_missing & (total_days <= 0)).astype(bool)
    result['undefined_completion'] = (~completion_ok).astype(bool)
    result['dates_missing'] = dates_missing.astype(bool)

    return result


# =============================================================================
# Issue Collection
# =============================================================================


def exclude_malformed_contracts(df: pd.DataFrame) -> Tuple[pd.DataFrame, List[PipelineIssue]]:
    """
    Drop every row of any contract with a malformed date range.

    A contract whose end_date is not after its start_date cannot be placed on
    the time axis; it is excluded from the output and the pipeline continues
    with the other contracts.

    Args:
        df: Output of add_derived_columns.

    Returns:
        Tuple of (filtered DataFrame, one fatal MalformedDateRange issue per
        excluded contract).
    """
    malformed_ids = sorted(df.loc[df['malformed_date_range'], 'contract_id'].unique())
    issues: List[PipelineIssue] = []

    for contract_id in malformed_ids:
        rows = df[(df['contract_id'] == contract_id) & df['malformed_date_range']]
        first = rows.iloc[0]
        message = (
            f"Contract {contract_id} has end_date {first['end_date']:%Y-%m-%d} not after "
            f"start_date {first['start_date']:%Y-%m-%d}; excluded from output"
        )
        logger.warning(message)
        issues.append(PipelineIssue(
            issue_type=IssueType.MALFORMED_DATE_RANGE,
            severity=IssueSeverity.FATAL,
            contract_id=contract_id,
            message=message,
        ))

    if not malformed_ids:
        return df.copy(), issues

    filtered = df[~df['contract_id'].isin(malformed_ids)].reset_index(drop=True)
    return filtered, issues


def collect_completion_issues(df: pd.DataFrame) -> List[PipelineIssue]:
    """
    Report every row whose completion percentage is undefined.

    Args:
        df: Output of add_derived_columns.

    Returns:
        One UndefinedCompletion warning per affected row.
    """
    undefined = df[df['undefined_completion']]
    if undefined.empty:
        return []

    logger.warning(f"{len(undefined)} rows have undefined completion (zero or missing budget)")
    return [
        PipelineIssue(
            issue_type=IssueType.UNDEFINED_COMPLETION,
            severity=IssueSeverity.WARNING,
            contract_id=row.contract_id,
            months_ago=int(row.months_ago),
            message=f"Budget is zero or missing for {row.contract_id} at months_ago={row.months_ago}",
        )
        for row in undefined.itertuples(index=False)
    ]


__all__ = [
    'DERIVED_COLUMNS',
    'calculate_derived_metrics',
    'add_derived_columns',
    'exclude_malformed_contracts',
    'collect_completion_issues',
]
