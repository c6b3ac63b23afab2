"""
Trajectory pipeline orchestration.

Runs the full transformation over one in-memory snapshot table:

    load -> derive -> (aggregate -> re-derive) -> exclude malformed contracts
         -> trajectories -> broadcast -> smoothing

Every stage takes a table and returns a new one. Per-contract stages work on
groupby partitions, so the summary and curve of one contract never see rows
belonging to another.
"""

import logging
from pathlib import Path
from typing import BinaryIO, List, Optional, TextIO, Union

import pandas as pd

from progress_trajectory.core.config import Settings, get_settings
from progress_trajectory.models import PipelineIssue, PipelineResult
from progress_trajectory.services.aggregation import aggregate_contracts, collect_parent_date_issues
from progress_trajectory.services.ingestion import (
    REQUIRED_COLUMNS,
    load_snapshot_frame,
    load_snapshots_csv,
)
from progress_trajectory.services.metrics import (
    add_derived_columns,
    collect_completion_issues,
    exclude_malformed_contracts,
)
from progress_trajectory.services.smoothing import smooth_trajectories
from progress_trajectory.services.trajectory import attach_trajectories, compute_trajectories

logger = logging.getLogger(__name__)


def run_pipeline(
    raw: pd.DataFrame,
    aggregate: bool = True,
    smoothing_points: Optional[int] = None,
    settings: Optional[Settings] = None
) -> PipelineResult:
    """
    Run the trajectory pipeline over a snapshot table.

    Args:
        raw: Snapshot table. Tables not yet loaded (missing base_id/is_parent)
            are validated with load_snapshot_frame first.
        aggregate: Collapse child contracts into their parents.
        smoothing_points: Dense resample size per contract
            (default: settings.smoothing_points).
        settings: Settings override (default: get_settings()).

    Returns:
        PipelineResult with the contracts, trajectories and smoothed tables
        and every issue encountered.

    Raises:
        ParseError: If the raw table fails validation.
    """
    if settings is None:
        settings = get_settings()
    if smoothing_points is None:
        smoothing_points = settings.smoothing_points

    delimiter = settings.hierarchy_delimiter
    if not {'base_id', 'is_parent'}.issubset(raw.columns):
        raw = load_snapshot_frame(raw, delimiter)

    issues: List[PipelineIssue] = []

    table = raw[REQUIRED_COLUMNS + ['base_id', 'is_parent']]
    derived = add_derived_columns(table)

    if aggregate:
        aggregated, aggregation_issues = aggregate_contracts(derived, delimiter)
        issues.extend(aggregation_issues)
        derived = add_derived_columns(aggregated)
    else:
        issues.extend(collect_parent_date_issues(derived))

    derived, malformed_issues = exclude_malformed_contracts(derived)
    issues.extend(malformed_issues)
    issues.extend(collect_completion_issues(derived))

    trajectories, trajectory_issues = compute_trajectories(derived)
    issues.extend(trajectory_issues)

    contracts = attach_trajectories(derived, trajectories)
    smoothed = smooth_trajectories(contracts, smoothing_points, settings)

    logger.info(
        f"Pipeline complete: {contracts['contract_id'].nunique()} contracts, "
        f"{len(contracts)} rows, {len(smoothed)} curve points, {len(issues)} issues"
    )
    return PipelineResult(
        contracts=contracts,
        trajectories=trajectories,
        smoothed=smoothed,
        issues=issues,
    )


def run_pipeline_from_csv(
    source: Union[str, Path, BinaryIO, TextIO, bytes],
    aggregate: bool = True,
    smoothing_points: Optional[int] = None,
    settings: Optional[Settings] = None
) -> PipelineResult:
    """
    Load a snapshot CSV and run the pipeline over it.

    Raises:
        ParseError: If the CSV cannot be parsed or fails validation.
    """
    if settings is None:
        settings = get_settings()
    raw = load_snapshots_csv(source, settings.hierarchy_delimiter)
    return run_pipeline(raw, aggregate=aggregate, smoothing_points=smoothing_points, settings=settings)


__all__ = [
    'run_pipeline',
    'run_pipeline_from_csv',
]
