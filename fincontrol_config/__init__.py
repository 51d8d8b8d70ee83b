"""
fincontrol_config -- runtime settings for the kernel and the job runner.

Public API:
    load_settings(path=None, env=None) -> AppSettings
"""

from fincontrol_config.loader import load_settings, parse_settings
from fincontrol_config.schema import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    SchedulerSettings,
)

__all__ = [
    "load_settings",
    "parse_settings",
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "SchedulerSettings",
]
