"""
Context management for structured logging.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

import structlog

# Context variables for scenario tracking
_scenario_id: ContextVar[Optional[str]] = ContextVar("scenario_id", default=None)
_scenario_name: ContextVar[Optional[str]] = ContextVar("scenario_name", default=None)
_variant: ContextVar[Optional[str]] = ContextVar("variant", default=None)


@contextmanager
def with_scenario_context(
    scenario: str,
    variant: Optional[str] = None,
    scenario_id: Optional[str] = None,
) -> Iterator[str]:
    """
    Bind scenario context to all logs emitted inside the block.

    Args:
        scenario: Scenario name (e.g., "store_rect", "read_rect")
        variant: Rect variant tag the scenario runs against
        scenario_id: Explicit identifier; generated when omitted

    Yields:
        The scenario identifier
    """
    sid = scenario_id or generate_scenario_id()

    id_token = _scenario_id.set(sid)
    name_token = _scenario_name.set(scenario)
    variant_token = _variant.set(variant)

    bindings = {"scenario_id": sid, "scenario": scenario, "variant": variant}
    # Values of an enclosing scenario, bound again when this block exits
    bound = structlog.contextvars.get_contextvars()
    outer = {key: bound[key] for key in bindings if key in bound}

    structlog.contextvars.unbind_contextvars(*bindings)
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in bindings.items() if value is not None}
    )

    try:
        yield sid
    finally:
        structlog.contextvars.unbind_contextvars(*bindings)
        structlog.contextvars.bind_contextvars(**outer)
        _variant.reset(variant_token)
        _scenario_name.reset(name_token)
        _scenario_id.reset(id_token)


def generate_scenario_id() -> str:
    """Generate a unique scenario ID."""
    return f"scn_{uuid.uuid4().hex[:12]}"


def get_scenario_id() -> Optional[str]:
    """Get the current scenario ID from context."""
    return _scenario_id.get()


def get_scenario_name() -> Optional[str]:
    """Get the current scenario name from context."""
    return _scenario_name.get()


def get_variant() -> Optional[str]:
    """Get the current rect variant tag from context."""
    return _variant.get()
