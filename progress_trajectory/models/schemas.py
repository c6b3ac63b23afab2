"""
Pydantic schemas for the progress trajectory pipeline.

These models define the typed boundary of the pipeline: the raw snapshot row
accepted by the loader, the per-contract trajectory summary, the overlay line
handed to the presentation layer, and the error/issue records returned next
to the output tables.

Undefined numeric values (division by zero, unresolved dates) are carried as
None in these models. Inside DataFrames the same values are NaN.
"""

import math
from dataclasses import dataclass, field
from datetime import date as DateType
from typing import List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from progress_trajectory.models.enums import IssueSeverity, IssueType


# =============================================================================
# Input Row
# =============================================================================


class SnapshotRecord(BaseModel):
    """
    One observation of a contract's cumulative budget and work done.

    base_id and is_parent are resolved once at load time from contract_id and
    the hierarchy delimiter.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "contract_id": "PROJ_01/A",
                "months_ago": 0,
                "snapshot_date": "2025-07-26",
                "start_date": "2022-03-01",
                "end_date": "2028-03-01",
                "budget": 1250000.0,
                "work_done": 410000.0,
                "base_id": "PROJ_01",
                "is_parent": False
            }
        }
    )

    contract_id: str = Field(..., min_length=1, description="Contract identifier")
    months_ago: int = Field(..., ge=0, description="Distance from the most recent snapshot")
    snapshot_date: DateType = Field(..., description="Date of the observation")
    start_date: Optional[DateType] = Field(default=None, description="Contract start date")
    end_date: Optional[DateType] = Field(default=None, description="Contract end date")
    budget: Optional[float] = Field(default=None, ge=0.0, description="Total contract budget; None when blank")
    work_done: Optional[float] = Field(default=None, description="Cumulative work value; None when blank")
    base_id: str = Field(..., description="Parent contract identifier")
    is_parent: bool = Field(..., description="True when the record is the parent itself")


# =============================================================================
# Validation and Issues
# =============================================================================


class ValidationError(BaseModel):
    """
    Validation error detail.

    Used for reporting malformed input rows during loading.
    """
    field: str = Field(
        ...,
        description="Field with validation error"
    )
    message: str = Field(
        ...,
        description="Error message"
    )
    row_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="Row number where error occurred"
    )


class PipelineIssue(BaseModel):
    """
    Non-fatal (or contract-scoped fatal) condition detected while processing.
    """
    issue_type: IssueType = Field(..., description="Condition detected")
    severity: IssueSeverity = Field(..., description="Effect on the output")
    contract_id: Optional[str] = Field(default=None, description="Affected contract")
    months_ago: Optional[int] = Field(default=None, description="Affected snapshot, if row-scoped")
    message: str = Field(..., description="Human readable description")


# =============================================================================
# Trajectory Outputs
# =============================================================================


def _nan_to_none(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) or math.isinf(value) else value


class TrajectorySummary(BaseModel):
    """
    Linear trajectory of one contract from its oldest to its newest snapshot.

    (x1, y1) is the (pct_time, pct_complete) pair at the maximum months_ago,
    (x2, y2) the pair at months_ago == 0. slope, angle and prediction are None
    when the slope is undefined.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "contract_id": "PROJ_07",
                "x1": 10.0,
                "y1": 5.0,
                "x2": 80.0,
                "y2": 60.0,
                "slope": 0.7857,
                "angle": 38.157,
                "prediction": 75.714,
                "slope_defined": True
            }
        }
    )

    contract_id: str
    x1: Optional[float] = None
    y1: Optional[float] = None
    x2: Optional[float] = None
    y2: Optional[float] = None
    slope: Optional[float] = None
    angle: Optional[float] = Field(default=None, description="Trajectory angle in degrees")
    prediction: Optional[float] = Field(
        default=None,
        description="Completion % linearly extrapolated to 100% time"
    )
    slope_defined: bool = False

    @field_validator('x1', 'y1', 'x2', 'y2', 'slope', 'angle', 'prediction', mode='before')
    @classmethod
    def _undefined_as_none(cls, value):
        return _nan_to_none(value)


class ExtrapolationLine(BaseModel):
    """
    Overlay line from the oldest observation to the predicted completion at 100% time.
    """
    contract_id: str
    angle: Optional[float] = None
    prediction: Optional[float] = None
    x1: Optional[float] = None
    y1: Optional[float] = None
    x_end: float = 100.0
    y_end: Optional[float] = None

    @field_validator('angle', 'prediction', 'x1', 'y1', 'y_end', mode='before')
    @classmethod
    def _undefined_as_none(cls, value):
        return _nan_to_none(value)


# =============================================================================
# Pipeline Result
# =============================================================================


@dataclass
class PipelineResult:
    """
    Output of one pipeline invocation.

    Attributes:
        contracts: Derived (optionally aggregated) table, one row per
            (contract_id, months_ago), with trajectory columns broadcast.
        trajectories: One row per contract.
        smoothed: Dense curve table keyed by (contract_id, point_index).
        issues: Every non-fatal or contract-scoped condition encountered.
    """
    contracts: pd.DataFrame
    trajectories: pd.DataFrame
    smoothed: pd.DataFrame
    issues: List[PipelineIssue] = field(default_factory=list)

    def issues_of(self, issue_type: IssueType) -> List[PipelineIssue]:
        return [issue for issue in self.issues if issue.issue_type == issue_type]
