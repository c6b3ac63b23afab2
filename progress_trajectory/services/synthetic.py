"""
Synthetic snapshot generator.

Generates realistic, reproducible project timeline data for demonstrations
and tests. Each project gets 13 monthly snapshots (months_ago 12..0) with a
monotonic completion history shaped by its progress profile:

    - ahead: completion 1.2-1.8x the elapsed time (capped at 100%)
    - on_track: completion 0.9-1.1x the elapsed time
    - very_slow: completion 0.05-0.15x the elapsed time
    - stalled: 0-8% completion, no progress before the current month
    - behind: completion 0.3-0.8x the elapsed time

One or two projects are slightly overdue (100-110% time elapsed). Three
projects are truncated to 5, 8 and 10 months of history to simulate contracts
that started recently.

The output uses the loader's raw schema and can be fed straight into
run_pipeline, or written to CSV with write_sample_csv.
"""

import logging
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from progress_trajectory.models import ProjectType

logger = logging.getLogger(__name__)

DEFAULT_SEED: int = 42
DEFAULT_PROJECTS: int = 20
DEFAULT_CURRENT_DATE: date = date(2025, 7, 26)

# Snapshots per project: months_ago 12..0
HISTORY_MONTHS: int = 13
# Largest month-on-month completion increase, in percentage points
MAX_MONTHLY_PROGRESS: float = 5.0

# (months of history kept) for the truncated projects
TRUNCATED_HISTORIES: List[int] = [5, 8, 10]

FIXED_TYPE_MIX: List[ProjectType] = (
    [ProjectType.AHEAD] * 2
    + [ProjectType.ON_TRACK] * 2
    + [ProjectType.VERY_SLOW] * 2
    + [ProjectType.STALLED]
)


def _final_completion(rng: np.random.Generator, project_type: ProjectType, pct_time: float) -> float:
    if project_type == ProjectType.AHEAD:
        value = min(100.0, pct_time * rng.uniform(1.2, 1.8))
    elif project_type == ProjectType.ON_TRACK:
        value = pct_time * rng.uniform(0.9, 1.1)
    elif project_type == ProjectType.VERY_SLOW:
        value = pct_time * rng.uniform(0.05, 0.15)
    elif project_type == ProjectType.STALLED:
        value = rng.uniform(0.0, 8.0)
    else:
        value = pct_time * rng.uniform(0.3, 0.8)
    return float(np.clip(value, 0.0, 100.0))


def _completion_history(
    rng: np.random.Generator,
    project_type: ProjectType,
    final_completion: float
) -> np.ndarray:
    """Completion per snapshot, oldest first, ending at final_completion."""
    completions = np.zeros(HISTORY_MONTHS)
    completions[-1] = final_completion

    if project_type != ProjectType.STALLED:
        for i in range(HISTORY_MONTHS - 2, -1, -1):
            completions[i] = max(0.0, completions[i + 1] - rng.uniform(0.0, MAX_MONTHLY_PROGRESS))

    return np.maximum.accumulate(completions)


def generate_sample_data(
    seed: int = DEFAULT_SEED,
    n_projects: int = DEFAULT_PROJECTS,
    current_date: date = DEFAULT_CURRENT_DATE
) -> pd.DataFrame:
    """
    Generate a synthetic snapshot table.

    Args:
        seed: Random seed; the same seed always yields the same table.
        n_projects: Number of projects (at least the fixed type mix size).
        current_date: Date of the months_ago == 0 snapshot.

    Returns:
        DataFrame with the loader's raw columns, ordered by contract_id and
        descending months_ago.
    """
    if n_projects < len(FIXED_TYPE_MIX):
        raise ValueError(f"n_projects must be at least {len(FIXED_TYPE_MIX)}, got {n_projects}")

    rng = np.random.default_rng(seed)
    projects = [f"PROJ_{i:02d}" for i in range(1, n_projects + 1)]
    types = FIXED_TYPE_MIX + [ProjectType.BEHIND] * (n_projects - len(FIXED_TYPE_MIX))
    types = [types[i] for i in rng.permutation(n_projects)]
    overdue = set(rng.choice(n_projects, size=int(rng.integers(1, 3)), replace=False).tolist())

    current = pd.Timestamp(current_date)
    frames = []

    for i, (project_id, project_type) in enumerate(zip(projects, types)):
        total_days = int(rng.integers(3, 11)) * 365
        target_pct_time = rng.uniform(100, 110) if i in overdue else rng.uniform(20, 95)

        start_date = current - pd.Timedelta(days=round(target_pct_time / 100 * total_days))
        end_date = start_date + pd.Timedelta(days=total_days)
        budget = round(rng.uniform(1_000_000, 100_000_000), -3)

        final = _final_completion(rng, project_type, target_pct_time)
        completions = _completion_history(rng, project_type, final)

        months_ago = np.arange(HISTORY_MONTHS - 1, -1, -1)
        frames.append(pd.DataFrame({
            'contract_id': project_id,
            'months_ago': months_ago,
            'snapshot_date': [current - pd.DateOffset(months=int(m)) for m in months_ago],
            'start_date': start_date,
            'end_date': end_date,
            'budget': budget,
            'work_done': np.round(budget * completions / 100, -3),
        }))

    data = pd.concat(frames, ignore_index=True)

    truncated = rng.choice(n_projects, size=len(TRUNCATED_HISTORIES), replace=False)
    for project_index, months_kept in zip(truncated, TRUNCATED_HISTORIES):
        drop = (data['contract_id'] == projects[project_index]) & (data['months_ago'] >= months_kept)
        data = data[~drop]

    data = (
        data.sort_values(['contract_id', 'months_ago'], ascending=[True, False])
        .reset_index(drop=True)
    )
    logger.info(f"Generated {len(data)} records for {data['contract_id'].nunique()} projects")
    return data


def write_sample_csv(
    path: Union[str, Path],
    seed: int = DEFAULT_SEED,
    n_projects: int = DEFAULT_PROJECTS,
    current_date: Optional[date] = None
) -> Path:
    """
    Generate synthetic data and write it as a snapshot CSV with ISO dates.

    Returns:
        The path written.
    """
    data = generate_sample_data(
        seed=seed,
        n_projects=n_projects,
        current_date=current_date or DEFAULT_CURRENT_DATE,
    )
    path = Path(path)
    data.to_csv(path, index=False, date_format='%Y-%m-%d')
    logger.info(f"Sample data exported to {path}")
    return path


__all__ = [
    'DEFAULT_SEED',
    'DEFAULT_CURRENT_DATE',
    'HISTORY_MONTHS',
    'TRUNCATED_HISTORIES',
    'generate_sample_data',
    'write_sample_csv',
]
