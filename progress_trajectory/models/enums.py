"""
Enumeration definitions for the progress trajectory pipeline.

All enums inherit from both `str` and `Enum` so that they serialize cleanly
inside pydantic models and can be compared against plain strings stored in
DataFrame columns.
"""

from enum import Enum


class IssueType(str, Enum):
    """
    Data-quality and numerical conditions raised while processing snapshots.

    - ParseError: Malformed input row or date (fatal, aborts the load)
    - MalformedDateRange: end_date not after start_date (contract excluded)
    - UndefinedCompletion: Zero budget, completion percentage is undefined
    - UndefinedSlope: Trajectory slope cannot be computed (zero time delta)
    - DuplicateSnapshot: More than one row at the same months_ago for a contract
    - MissingParentDates: Children present at a snapshot without their parent record
    - MissingCurrentSnapshot: Contract has no months_ago == 0 observation
    """
    PARSE_ERROR = "ParseError"
    MALFORMED_DATE_RANGE = "MalformedDateRange"
    UNDEFINED_COMPLETION = "UndefinedCompletion"
    UNDEFINED_SLOPE = "UndefinedSlope"
    DUPLICATE_SNAPSHOT = "DuplicateSnapshot"
    MISSING_PARENT_DATES = "MissingParentDates"
    MISSING_CURRENT_SNAPSHOT = "MissingCurrentSnapshot"


class IssueSeverity(str, Enum):
    """
    How an issue affects the output.

    - fatal: The affected scope (load or contract) produced no output
    - warning: Output produced with explicit null markers
    - info: Informational only
    """
    FATAL = "fatal"
    WARNING = "warning"
    INFO = "info"


class ScheduleStatus(str, Enum):
    """
    Position of a contract relative to the ideal diagonal (completion = time).

    - ahead: Completion above the diagonal
    - on_track: Within the tolerance band around the diagonal
    - behind: Completion below the diagonal
    - stalled: Time has elapsed but completion is near zero
    - overdue: More than 100% of the contract time has elapsed
    - unknown: Either percentage is undefined
    """
    AHEAD = "ahead"
    ON_TRACK = "on_track"
    BEHIND = "behind"
    STALLED = "stalled"
    OVERDUE = "overdue"
    UNKNOWN = "unknown"


class ProjectType(str, Enum):
    """
    Progress profiles used by the synthetic data generator.
    """
    AHEAD = "ahead"
    ON_TRACK = "on_track"
    VERY_SLOW = "very_slow"
    STALLED = "stalled"
    BEHIND = "behind"
