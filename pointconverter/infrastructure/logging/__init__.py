"""Logging utilities for infrastructure adapters."""

from .utilities import LoggingPort, log_store_operation

__all__ = ["LoggingPort", "log_store_operation"]
