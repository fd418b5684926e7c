"""
Folio Configuration

Settings, logging and business event helpers.
"""

from .logging import (
    AnalyticsEventLogger,
    configure_logging,
    event_logger,
    log_performance,
    set_portfolio_context,
)
from .settings import FolioSettings, clear_settings_cache, get_settings, load_settings

__all__ = [
    "FolioSettings",
    "get_settings",
    "load_settings",
    "clear_settings_cache",
    "AnalyticsEventLogger",
    "configure_logging",
    "event_logger",
    "log_performance",
    "set_portfolio_context",
]
