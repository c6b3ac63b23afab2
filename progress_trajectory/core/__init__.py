"""
Core infrastructure package for the progress trajectory pipeline.

Provides configuration management via pydantic-settings and the logging
bootstrap. Re-exports the key components so callers can write:

    from progress_trajectory.core import get_settings

instead of:

    from progress_trajectory.core.config import get_settings
"""

from progress_trajectory.core.config import (
    LOG_FORMAT,
    Settings,
    configure_logging,
    get_settings,
)

__all__ = [
    'LOG_FORMAT',
    'Settings',
    'configure_logging',
    'get_settings',
]
