"""
Structured logging for the point converter.

This module provides structured logging capabilities with:
- structlog configuration for JSON or key-value output
- Scenario context tracking through contextvars
"""

from .factory import configure_logging, get_logger
from .context import (
    with_scenario_context,
    get_scenario_id,
    get_scenario_name,
    get_variant,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "with_scenario_context",
    "get_scenario_id",
    "get_scenario_name",
    "get_variant",
]
