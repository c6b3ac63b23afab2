"""
Snapshot Ingestion Service

This module loads raw contract snapshot tables for the trajectory pipeline,
from CSV files or in-memory DataFrames, with identical schema validation.

Key Features:
- Required column validation (case-insensitive, with legacy column aliases)
- ISO date parsing for snapshot/start/end dates
- Numeric validation for budget and work done
- months_ago must be a non-negative integer
- Parent/child hierarchy resolved once per row (base_id, is_parent)

Any validation failure aborts the load with a ParseError carrying every
ValidationError found, each with its 1-based row number where applicable.
Malformed dates are a load-time failure; they are never deferred to the
metric deriver.
"""

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, TextIO, Union

import pandas as pd

from progress_trajectory.core.config import get_settings
from progress_trajectory.models import (
    IssueSeverity,
    IssueType,
    PipelineIssue,
    SnapshotRecord,
    ValidationError,
)

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS - Schema
# =============================================================================

REQUIRED_COLUMNS: List[str] = [
    'contract_id',
    'months_ago',
    'snapshot_date',
    'start_date',
    'end_date',
    'budget',
    'work_done',
]

DATE_COLUMNS: List[str] = ['snapshot_date', 'start_date', 'end_date']

NUMERIC_COLUMNS: List[str] = ['budget', 'work_done']

# Column names used by the legacy export format
COLUMN_ALIASES: Dict[str, str] = {
    'symv_no': 'contract_id',
    'cur_symvat': 'budget',
    'sum_work': 'work_done',
}

# Number of offending rows quoted in a validation message
MAX_REPORTED_ROWS: int = 5


class ParseError(ValueError):
    """
    Raised when a snapshot table cannot be loaded.

    Attributes:
        errors: Every validation problem found, with row context.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = list(errors)
        summary = '; '.join(self._describe(e) for e in self.errors)
        super().__init__(f"Failed to load snapshot table: {summary}")

    @staticmethod
    def _describe(error: ValidationError) -> str:
        row = f" (row {error.row_number})" if error.row_number else ''
        return f"{error.field}: {error.message}{row}"

    def to_issues(self) -> List[PipelineIssue]:
        """Report every validation problem as a fatal ParseError issue."""
        return [
            PipelineIssue(
                issue_type=IssueType.PARSE_ERROR,
                severity=IssueSeverity.FATAL,
                message=self._describe(e),
            )
            for e in self.errors
        ]


# =============================================================================
# COLUMN NORMALIZATION
# =============================================================================

def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Lowercase and strip column names, then map legacy aliases to canonical names.

    An alias is only applied when the canonical column is absent.

    Args:
        df: Input DataFrame

    Returns:
        Copy of the DataFrame with normalized column names
    """
    df_normalized = df.copy()
    df_normalized.columns = df_normalized.columns.astype(str).str.lower().str.strip()

    renames = {
        alias: canonical
        for alias, canonical in COLUMN_ALIASES.items()
        if alias in df_normalized.columns and canonical not in df_normalized.columns
    }
    if renames:
        df_normalized = df_normalized.rename(columns=renames)

    return df_normalized


def _blank(series: pd.Series) -> pd.Series:
    """True where a raw cell is missing or whitespace-only."""
    return series.isna() | series.astype(str).str.strip().eq('')


def _parse_dates(series: pd.Series) -> pd.Series:
    text = series.where(~_blank(series), None)
    return pd.to_datetime(text, format='ISO8601', errors='coerce')


def _error_for_rows(field: str, mask: pd.Series, message: str) -> Optional[ValidationError]:
    invalid_count = int(mask.sum())
    if invalid_count == 0:
        return None
    positions = [i for i, flagged in enumerate(mask.tolist()) if flagged][:MAX_REPORTED_ROWS]
    row_numbers = [p + 1 for p in positions]
    return ValidationError(
        field=field,
        message=f"Found {invalid_count} {message}. First invalid rows: {row_numbers}",
        # Convert 0-based position to 1-based row number
        row_number=row_numbers[0],
    )


# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_columns(df: pd.DataFrame) -> List[ValidationError]:
    """
    Validate that all required columns are present in the DataFrame.

    Args:
        df: The pandas DataFrame to validate (raw or normalized)

    Returns:
        List of ValidationError objects for any missing columns
    """
    errors: List[ValidationError] = []
    df_columns = set(normalize_columns(df.head(0)).columns)

    for col in REQUIRED_COLUMNS:
        if col not in df_columns:
            errors.append(ValidationError(
                field=col,
                message=f"Required column '{col}' is missing",
                row_number=None
            ))

    return errors


def validate_data_types(df: pd.DataFrame) -> List[ValidationError]:
    """
    Validate that columns have the correct data types.

    Checks:
    - contract_id is present and non-blank
    - months_ago is a non-negative integer
    - snapshot_date is a valid ISO date; start/end dates are valid ISO dates
      when present (children may leave them blank)
    - budget and work_done are numeric when present; budget is non-negative

    Args:
        df: The pandas DataFrame to validate

    Returns:
        List of ValidationError objects for any type issues
    """
    errors: List[ValidationError] = []
    df_norm = normalize_columns(df)
    checks = []

    if 'contract_id' in df_norm.columns:
        checks.append(_error_for_rows(
            'contract_id',
            _blank(df_norm['contract_id']),
            "blank contract identifiers",
        ))

    if 'months_ago' in df_norm.columns:
        months = pd.to_numeric(df_norm['months_ago'], errors='coerce')
        invalid = months.isna() | (months < 0) | (months.fillna(0) % 1 != 0)
        checks.append(_error_for_rows(
            'months_ago',
            invalid,
            "months_ago values that are not non-negative integers",
        ))

    for col in DATE_COLUMNS:
        if col not in df_norm.columns:
            continue
        raw = df_norm[col]
        parsed = _parse_dates(raw)
        if col == 'snapshot_date':
            invalid = parsed.isna()
        else:
            invalid = parsed.isna() & ~_blank(raw)
        checks.append(_error_for_rows(col, invalid, f"invalid date values in column '{col}'"))

    for col in NUMERIC_COLUMNS:
        if col not in df_norm.columns:
            continue
        raw = df_norm[col]
        numeric = pd.to_numeric(raw, errors='coerce')
        checks.append(_error_for_rows(
            col,
            numeric.isna() & ~_blank(raw),
            f"non-numeric values in column '{col}'",
        ))
        if col == 'budget':
            checks.append(_error_for_rows(col, numeric < 0, "negative budget values"))

    errors.extend(e for e in checks if e is not None)
    return errors


# =============================================================================
# TRANSFORMATION FUNCTIONS
# =============================================================================

def resolve_hierarchy(df: pd.DataFrame, delimiter: Optional[str] = None) -> pd.DataFrame:
    """
    Attach the resolved contract hierarchy to every row.

    base_id is the substring before the first delimiter (the whole id when the
    delimiter is absent or leading); is_parent is True when the row is the
    parent record itself.

    Args:
        df: DataFrame with a contract_id column
        delimiter: Hierarchy delimiter (default: Settings.hierarchy_delimiter)

    Returns:
        New DataFrame with base_id and is_parent columns
    """
    if delimiter is None:
        delimiter = get_settings().hierarchy_delimiter

    df_result = df.copy()
    ids = df_result['contract_id'].astype(str)
    base = ids.str.split(delimiter, n=1, regex=False).str[0]
    df_result['base_id'] = base.where(base.str.len() > 0, ids)
    df_result['is_parent'] = df_result['contract_id'] == df_result['base_id']
    return df_result


def _normalize_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce a validated DataFrame to the typed snapshot schema.

    Args:
        df: Validated DataFrame with normalized column names

    Returns:
        DataFrame with string ids, int64 months_ago, datetime64 dates and float measures
    """
    df_normalized = df.copy()
    df_normalized['contract_id'] = df_normalized['contract_id'].astype(str).str.strip()
    df_normalized['months_ago'] = pd.to_numeric(df_normalized['months_ago']).astype('int64')

    for col in DATE_COLUMNS:
        df_normalized[col] = _parse_dates(df_normalized[col]).dt.normalize()

    for col in NUMERIC_COLUMNS:
        df_normalized[col] = pd.to_numeric(df_normalized[col], errors='coerce').astype('float64')

    return df_normalized


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================

def load_snapshot_frame(df: pd.DataFrame, delimiter: Optional[str] = None) -> pd.DataFrame:
    """
    Validate and normalize an in-memory snapshot table.

    Performs the following steps:
    1. Normalize column names (aliases, case)
    2. Validate required columns
    3. Validate data types
    4. Coerce types and resolve the contract hierarchy

    Args:
        df: Raw snapshot table
        delimiter: Hierarchy delimiter (default: Settings.hierarchy_delimiter)

    Returns:
        New typed DataFrame sorted by (contract_id, months_ago)

    Raises:
        ParseError: If the table is empty or any validation error is found
    """
    if df.empty:
        raise ParseError([ValidationError(
            field='file',
            message='Snapshot table is empty or contains no data rows',
            row_number=None
        )])

    df = normalize_columns(df)

    column_errors = validate_columns(df)
    if column_errors:
        raise ParseError(column_errors)

    type_errors = validate_data_types(df)
    if type_errors:
        raise ParseError(type_errors)

    extra_columns = [c for c in df.columns if c not in REQUIRED_COLUMNS]
    if extra_columns:
        logger.debug(f"Ignoring extra columns: {extra_columns}")

    df_typed = _normalize_dataframe(df[REQUIRED_COLUMNS])
    df_typed = resolve_hierarchy(df_typed, delimiter)
    df_typed = df_typed.sort_values(['contract_id', 'months_ago'], kind='mergesort').reset_index(drop=True)

    logger.info(
        f"Loaded {len(df_typed)} snapshot rows for {df_typed['contract_id'].nunique()} contracts"
    )
    return df_typed


def load_snapshots_csv(
    source: Union[str, Path, BinaryIO, TextIO, bytes],
    delimiter: Optional[str] = None
) -> pd.DataFrame:
    """
    Parse and validate a snapshot CSV.

    Args:
        source: File path, raw CSV bytes, or a binary/text file object
        delimiter: Hierarchy delimiter (default: Settings.hierarchy_delimiter)

    Returns:
        Typed snapshot DataFrame (see load_snapshot_frame)

    Raises:
        ParseError: If the CSV cannot be parsed or fails validation
    """
    try:
        if isinstance(source, bytes):
            file_like: Any = io.BytesIO(source)
        elif hasattr(source, 'read'):
            content = source.read()
            if isinstance(content, bytes):
                file_like = io.BytesIO(content)
            else:
                file_like = io.StringIO(content)
        else:
            file_like = source

        # Keep raw text so validation sees exactly what was supplied
        df = pd.read_csv(file_like, dtype=str, keep_default_na=False)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ParseError([ValidationError(
            field='file',
            message=f'Failed to parse CSV file: {str(e)}',
            row_number=None
        )]) from e

    logger.info(f"Parsed CSV with {len(df)} rows and {len(df.columns)} columns")
    return load_snapshot_frame(df, delimiter)


def records_from_frame(df: pd.DataFrame) -> Iterator[SnapshotRecord]:
    """
    Yield typed SnapshotRecord objects from a loaded snapshot table.

    Args:
        df: Output of load_snapshot_frame / load_snapshots_csv

    Yields:
        SnapshotRecord per row, with missing dates as None
    """
    for row in df.itertuples(index=False):
        yield SnapshotRecord(
            contract_id=row.contract_id,
            months_ago=int(row.months_ago),
            snapshot_date=row.snapshot_date.date(),
            start_date=None if pd.isna(row.start_date) else row.start_date.date(),
            end_date=None if pd.isna(row.end_date) else row.end_date.date(),
            budget=None if pd.isna(row.budget) else float(row.budget),
            work_done=None if pd.isna(row.work_done) else float(row.work_done),
            base_id=row.base_id,
            is_parent=bool(row.is_parent),
        )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Constants
    'REQUIRED_COLUMNS',
    'DATE_COLUMNS',
    'NUMERIC_COLUMNS',
    'COLUMN_ALIASES',
    # Errors
    'ParseError',
    # Validation functions
    'normalize_columns',
    'validate_columns',
    'validate_data_types',
    # Transformation functions
    'resolve_hierarchy',
    # Loading functions
    'load_snapshot_frame',
    'load_snapshots_csv',
    'records_from_frame',
]
