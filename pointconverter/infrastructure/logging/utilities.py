"""Logging contracts for store adapters.

This module defines the logging base class and decorator used by
implementations of the entity store port.
"""

import functools
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TypeVar

from pointconverter.shared.logging import get_logger, get_scenario_id

T = TypeVar("T")

# Store operations slower than this are reported
SLOW_OPERATION_MS = 100


class LoggingPort(ABC):
    """Base port with built-in logging capabilities."""

    def __init__(self, logger_name: str | None = None):
        """Initialize port with logger."""
        self._logger = get_logger(logger_name or self.__class__.__name__)

    @abstractmethod
    def get_component_name(self) -> str:
        """Get component name for logging context."""
        pass


def _entity_class_name(args: tuple, kwargs: dict) -> str | None:
    entity_class = kwargs.get("entity_class")
    if entity_class is None and args and isinstance(args[0], type):
        entity_class = args[0]
    return entity_class.__name__ if entity_class is not None else None


def log_store_operation(
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for logging entity store operations with timing.

    Args:
        operation_name: Name of the operation (e.g., "query", "extent")

    Returns:
        Decorated function with logging
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            logger = getattr(self, "_logger", get_logger(f"store.{self.__class__.__name__}"))

            start_time = time.time()
            scenario_id = get_scenario_id()
            entity_class = _entity_class_name(args, kwargs)

            logger.debug(
                f"{operation_name}_started",
                operation=operation_name,
                component=self.__class__.__name__,
                entity_class=entity_class,
                scenario_id=scenario_id,
            )

            try:
                result = func(self, *args, **kwargs)

                duration_ms = (time.time() - start_time) * 1000

                success_log = {
                    "operation": operation_name,
                    "component": self.__class__.__name__,
                    "entity_class": entity_class,
                    "scenario_id": scenario_id,
                    "duration_ms": duration_ms,
                    "status": "success",
                }
                if isinstance(result, list):
                    success_log["result_count"] = len(result)

                logger.debug(f"{operation_name}_completed", **success_log)

                if duration_ms > SLOW_OPERATION_MS:
                    logger.warning(
                        "slow_store_operation",
                        operation=operation_name,
                        entity_class=entity_class,
                        duration_ms=duration_ms,
                        threshold_ms=SLOW_OPERATION_MS,
                    )

                return result

            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000

                logger.error(
                    f"{operation_name}_failed",
                    operation=operation_name,
                    component=self.__class__.__name__,
                    entity_class=entity_class,
                    scenario_id=scenario_id,
                    duration_ms=duration_ms,
                    status="failed",
                    error=str(e),
                    error_type=e.__class__.__name__,
                )
                raise

        return wrapper

    return decorator
