"""
Package initialization file for pipeline models.

Exports all pydantic schemas and enumerations from schemas.py and enums.py so
that other modules can import them from progress_trajectory.models directly.

Usage:
    from progress_trajectory.models import (
        IssueType,
        PipelineIssue,
        TrajectorySummary,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from progress_trajectory.models.enums import (
    IssueSeverity,
    IssueType,
    ProjectType,
    ScheduleStatus,
)

# =============================================================================
# Schemas
# =============================================================================

from progress_trajectory.models.schemas import (
    ExtrapolationLine,
    PipelineIssue,
    PipelineResult,
    SnapshotRecord,
    TrajectorySummary,
    ValidationError,
)

__all__ = [
    # Enums
    'IssueSeverity',
    'IssueType',
    'ProjectType',
    'ScheduleStatus',
    # Schemas
    'ExtrapolationLine',
    'PipelineIssue',
    'PipelineResult',
    'SnapshotRecord',
    'TrajectorySummary',
    'ValidationError',
]
