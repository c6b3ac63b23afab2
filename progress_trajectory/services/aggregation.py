"""
Contract aggregation service for the progress trajectory pipeline.

Collapses parent/child contract hierarchies into unified per-snapshot totals.
A contract id such as "PROJ_01/A" is a child of "PROJ_01"; the parent record
is the only one carrying authoritative start/end dates, and children share
its timeline.

Algorithm:
    1. Resolve the base (parent) id of every record.
    2. Group by (base_id, snapshot_date, months_ago) and sum budget and
       work_done; missing values count as zero.
    3. Left join the parent's own record at the same (snapshot_date,
       months_ago) to recover start_date/end_date.
    4. Emit one row per group keyed by the base id, sorted by
       (contract_id, months_ago).

When children exist at a snapshot without their parent, or the parent record
has blank dates, the dates of that row stay null and a MissingParentDates
issue is reported; downstream percentages for the row become NaN. Repeated
parent records at one snapshot are reported as DuplicateSnapshot (info).
"""

import logging
from typing import List, Optional, Tuple

import pandas as pd

from progress_trajectory.core.config import get_settings
from progress_trajectory.models import IssueSeverity, IssueType, PipelineIssue
from progress_trajectory.services.ingestion import resolve_hierarchy

logger = logging.getLogger(__name__)

GROUP_KEYS: List[str] = ['base_id', 'snapshot_date', 'months_ago']

AGGREGATED_COLUMNS: List[str] = [
    'contract_id',
    'months_ago',
    'snapshot_date',
    'start_date',
    'end_date',
    'budget',
    'work_done',
]


def base_contract_id(contract_id: str, delimiter: Optional[str] = None) -> str:
    """
    Return the parent id of a contract: the text before the first delimiter.

    Example:
        >>> base_contract_id("PROJ_01/A")
        'PROJ_01'
        >>> base_contract_id("PROJ_02")
        'PROJ_02'
    """
    if delimiter is None:
        delimiter = get_settings().hierarchy_delimiter
    base = contract_id.split(delimiter, 1)[0]
    return base or contract_id


def _missing_dates_issue(base_id, snapshot_date, months_ago, reason: str) -> PipelineIssue:
    message = (
        f"Dates unresolved for {base_id} at snapshot {pd.Timestamp(snapshot_date):%Y-%m-%d} "
        f"(months_ago={months_ago}): {reason}"
    )
    logger.warning(message)
    return PipelineIssue(
        issue_type=IssueType.MISSING_PARENT_DATES,
        severity=IssueSeverity.WARNING,
        contract_id=str(base_id),
        months_ago=int(months_ago),
        message=message,
    )


def aggregate_contracts(
    df: pd.DataFrame,
    delimiter: Optional[str] = None
) -> Tuple[pd.DataFrame, List[PipelineIssue]]:
    """
    Aggregate parent and child contracts into one series per parent.

    Args:
        df: Snapshot table (raw or derived). base_id/is_parent are used when
            present, otherwise resolved with the delimiter.
        delimiter: Hierarchy delimiter (default: Settings.hierarchy_delimiter).

    Returns:
        Tuple of (aggregated DataFrame with AGGREGATED_COLUMNS plus base_id and
        is_parent, list of MissingParentDates warnings and DuplicateSnapshot
        info issues for repeated parent records).
    """
    if 'base_id' not in df.columns or 'is_parent' not in df.columns or delimiter is not None:
        df = resolve_hierarchy(df, delimiter)

    sums = (
        df.groupby(GROUP_KEYS, dropna=False, sort=False)[['budget', 'work_done']]
        .sum(min_count=0)
        .reset_index()
    )

    parents = df.loc[df['is_parent'], GROUP_KEYS + ['start_date', 'end_date']]
    issues: List[PipelineIssue] = []

    duplicated = parents.duplicated(subset=GROUP_KEYS, keep='first')
    if duplicated.any():
        logger.warning(
            f"{int(duplicated.sum())} duplicate parent records found; keeping first occurrence for dates"
        )
        for row in parents[duplicated].drop_duplicates(subset=GROUP_KEYS).itertuples(index=False):
            issues.append(PipelineIssue(
                issue_type=IssueType.DUPLICATE_SNAPSHOT,
                severity=IssueSeverity.INFO,
                contract_id=row.base_id,
                months_ago=int(row.months_ago),
                message=(
                    f"Several parent records for {row.base_id} at months_ago={row.months_ago}; "
                    f"budgets summed, dates taken from the first"
                ),
            ))
        parents = parents[~duplicated]

    merged = sums.merge(parents, on=GROUP_KEYS, how='left', indicator=True)

    unresolved = merged[merged['start_date'].isna() | merged['end_date'].isna()]
    for base_id, snapshot_date, months_ago, source in zip(
        unresolved['base_id'], unresolved['snapshot_date'],
        unresolved['months_ago'], unresolved['_merge'],
    ):
        if source == 'left_only':
            reason = "no parent record"
        else:
            reason = "parent record has blank start_date/end_date"
        issues.append(_missing_dates_issue(base_id, snapshot_date, months_ago, reason))

    aggregated = (
        merged.drop(columns=['_merge'])
        .rename(columns={'base_id': 'contract_id'})
        [AGGREGATED_COLUMNS]
        .sort_values(['contract_id', 'months_ago'], kind='mergesort')
        .reset_index(drop=True)
    )
    aggregated['base_id'] = aggregated['contract_id']
    aggregated['is_parent'] = True

    logger.info(
        f"Aggregated {len(df)} rows into {len(aggregated)} rows for "
        f"{aggregated['contract_id'].nunique()} parent contracts"
    )
    return aggregated, issues


def collect_parent_date_issues(df: pd.DataFrame) -> List[PipelineIssue]:
    """
    Report parent rows whose start_date or end_date is blank.

    Used when the hierarchy is not aggregated: children legitimately carry no
    dates, but a parent without them cannot be placed on the time axis.
    """
    parents = df[df['is_parent'] & (df['start_date'].isna() | df['end_date'].isna())]
    return [
        _missing_dates_issue(contract_id, snapshot_date, months_ago,
                             "parent record has blank start_date/end_date")
        for contract_id, snapshot_date, months_ago in zip(
            parents['contract_id'], parents['snapshot_date'], parents['months_ago']
        )
    ]


__all__ = [
    'GROUP_KEYS',
    'AGGREGATED_COLUMNS',
    'base_contract_id',
    'aggregate_contracts',
    'collect_parent_date_issues',
]
