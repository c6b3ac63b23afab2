"""
Pipeline Services Module

This module contains the stateless transformation stages of the progress
trajectory pipeline. Every stage takes a pandas DataFrame and returns a new
one; none of them mutates its input.

Services:
- ingestion: Snapshot CSV/table loading with column and type validation
- metrics: Derived time/completion percentages and overdue flags
- aggregation: Child-to-parent contract roll-up
- trajectory: Per-contract slope, angle and linear prediction
- smoothing: Dense monotonic (PCHIP) curves for drawing
- presentation: Labels, hover text and axis limits for a chart renderer
- pipeline: End-to-end orchestration
- synthetic: Reproducible sample data generation
"""

# =============================================================================
# Ingestion Service Exports
# Snapshot loading with required column checks, type validation and
# hierarchy resolution
# =============================================================================

from progress_trajectory.services.ingestion import (
    COLUMN_ALIASES,
    REQUIRED_COLUMNS,
    ParseError,
    load_snapshot_frame,
    load_snapshots_csv,
    records_from_frame,
    resolve_hierarchy,
    validate_columns,
    validate_data_types,
)

# =============================================================================
# Metric Deriver Exports
# =============================================================================

from progress_trajectory.services.metrics import (
    DERIVED_COLUMNS,
    add_derived_columns,
    calculate_derived_metrics,
    collect_completion_issues,
    exclude_malformed_contracts,
)

# =============================================================================
# Aggregation Service Exports
# =============================================================================

from progress_trajectory.services.aggregation import (
    aggregate_contracts,
    base_contract_id,
    collect_parent_date_issues,
)

# =============================================================================
# Trajectory Service Exports
# Linear trajectory per contract, broadcast back onto its rows
# =============================================================================

from progress_trajectory.services.trajectory import (
    DEADLINE_PCT,
    analyze_contract,
    attach_trajectories,
    classify_schedule_status,
    compute_trajectories,
    extrapolation_lines,
)

# =============================================================================
# Smoothing Service Exports
# =============================================================================

from progress_trajectory.services.smoothing import (
    rescale,
    smooth_contract,
    smooth_trajectories,
)

# =============================================================================
# Presentation Exports
# =============================================================================

from progress_trajectory.services.presentation import (
    axis_limits,
    build_plot_frame,
    current_positions,
    format_decimal,
)

# =============================================================================
# Pipeline Orchestration Exports
# =============================================================================

from progress_trajectory.services.pipeline import (
    run_pipeline,
    run_pipeline_from_csv,
)

# =============================================================================
# Synthetic Data Exports
# =============================================================================

from progress_trajectory.services.synthetic import (
    generate_sample_data,
    write_sample_csv,
)

__all__ = [
    # Ingestion
    'COLUMN_ALIASES',
    'REQUIRED_COLUMNS',
    'ParseError',
    'load_snapshot_frame',
    'load_snapshots_csv',
    'records_from_frame',
    'resolve_hierarchy',
    'validate_columns',
    'validate_data_types',
    # Metrics
    'DERIVED_COLUMNS',
    'add_derived_columns',
    'calculate_derived_metrics',
    'collect_completion_issues',
    'exclude_malformed_contracts',
    # Aggregation
    'aggregate_contracts',
    'base_contract_id',
    'collect_parent_date_issues',
    # Trajectory
    'DEADLINE_PCT',
    'analyze_contract',
    'attach_trajectories',
    'classify_schedule_status',
    'compute_trajectories',
    'extrapolation_lines',
    # Smoothing
    'rescale',
    'smooth_contract',
    'smooth_trajectories',
    # Presentation
    'axis_limits',
    'build_plot_frame',
    'current_positions',
    'format_decimal',
    # Pipeline
    'run_pipeline',
    'run_pipeline_from_csv',
    # Synthetic data
    'generate_sample_data',
    'write_sample_csv',
]
