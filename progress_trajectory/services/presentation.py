"""
Presentation frame preparation.

Prepares the tables consumed by an external chart renderer: display labels,
hover text, the pipe-delimited custom data string used by the interactive
hover box, current-position rows for contract labels, and axis limits.
Nothing in this module draws anything.

custom_data layout:
    months_ago|formatted_date|angle|prediction|x1|y1|prediction_num
"""

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from progress_trajectory.core.config import get_settings
from progress_trajectory.services.trajectory import DEADLINE_PCT, classify_schedule_status

logger = logging.getLogger(__name__)

UNDEFINED_LABEL = 'N/A'
TICK_STEP = 20
AXIS_PADDING = 1.1


def format_decimal(
    value: Optional[float],
    digits: int = 2,
    separator: Optional[str] = None,
    suffix: str = ''
) -> str:
    """
    Format a number with a fixed number of decimals and a custom separator.

    Example:
        >>> format_decimal(38.1572, suffix='°')
        '38,16°'
        >>> format_decimal(float('nan'), suffix='%')
        'N/A'
    """
    if value is None or (isinstance(value, float) and (math.isnan(value) or math.isinf(value))):
        return UNDEFINED_LABEL
    if separator is None:
        separator = get_settings().decimal_separator
    return f"{value:.{digits}f}".replace('.', separator) + suffix


def _hover_text(row: pd.Series) -> str:
    return (
        f"Contract: {row['contract_id']}\n"
        f"Months ago: {row['months_ago']} ({row['formatted_date']})\n"
        f"% Time elapsed: {_round_label(row['pct_time'])}%\n"
        f"% Completion: {_round_label(row['pct_complete'])}%\n"
        f"Angle: {row['angle_label']}\n"
        f"Prediction: {row['prediction_label']}"
    )


def _round_label(value: float) -> str:
    return UNDEFINED_LABEL if pd.isna(value) else f"{round(float(value), 1)}"


def _raw_number(value: float) -> str:
    return 'NaN' if pd.isna(value) else repr(float(value))


def build_plot_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add the display columns expected by the renderer.

    Args:
        df: Contracts table with broadcast trajectory columns
            (output of the pipeline).

    Returns:
        New DataFrame sorted by (contract_id, months_ago) with formatted_date,
        angle_label, prediction_label, schedule_status, hover_text and
        custom_data columns.
    """
    frame = df.sort_values(['contract_id', 'months_ago'], kind='mergesort').reset_index(drop=True)

    frame['formatted_date'] = pd.to_datetime(frame['snapshot_date']).dt.strftime('%Y/%m')
    frame['angle_label'] = [format_decimal(v, suffix='°') for v in frame['angle']]
    frame['prediction_label'] = [format_decimal(v, suffix='%') for v in frame['prediction']]
    frame['schedule_status'] = [
        classify_schedule_status(t, c).value
        for t, c in zip(frame['pct_time'], frame['pct_complete'])
    ]
    frame['hover_text'] = frame.apply(_hover_text, axis=1) if not frame.empty else pd.Series(dtype=str)
    frame['custom_data'] = [
        '|'.join([
            str(row.months_ago),
            row.formatted_date,
            row.angle_label,
            row.prediction_label,
            _raw_number(row.x1),
            _raw_number(row.y1),
            _raw_number(row.prediction),
        ])
        for row in frame.itertuples(index=False)
    ]
    return frame


def current_positions(df: pd.DataFrame) -> pd.DataFrame:
    """
    Return the most recent observation (months_ago == 0) of every contract.
    """
    return (
        df[df['months_ago'] == 0]
        .drop_duplicates(subset=['contract_id'], keep='first')
        .reset_index(drop=True)
    )


def axis_limits(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Compute axis ranges and tick breaks for the time/completion chart.

    The x axis always covers the deadline (100%) and extends to the most
    overdue observation, padded by 10%. Ticks are placed every 20%.

    Returns:
        Dictionary with x_range, x_ticks, y_range, y_ticks.
    """
    observed = df['pct_time'].max() if not df.empty else np.nan
    max_time = DEADLINE_PCT if pd.isna(observed) else max(float(observed), DEADLINE_PCT)
    max_break = int(math.ceil(max_time / TICK_STEP) * TICK_STEP)

    x_ticks: List[int] = list(range(0, max_break + 1, TICK_STEP))
    y_ticks: List[int] = list(range(0, int(DEADLINE_PCT) + 1, TICK_STEP))

    return {
        'x_range': (0.0, max_time * AXIS_PADDING),
        'x_ticks': x_ticks,
        'x_tick_labels': [f"{t}%" for t in x_ticks],
        'y_range': (0.0, DEADLINE_PCT),
        'y_ticks': y_ticks,
        'y_tick_labels': [f"{t}%" for t in y_ticks],
    }


__all__ = [
    'UNDEFINED_LABEL',
    'format_decimal',
    'build_plot_frame',
    'current_positions',
    'axis_limits',
]
