"""
Phase reporting for the bulk update workflow.

Decouples the updater from whoever observes its progress (logs, tests, ...).
"""

import logging
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class UpdatePhase(str, Enum):
    """Update workflow phases."""
    INIT = "init"
    COLLECTING = "collecting"
    PRIVATIZING = "privatizing"
    APPLYING_TEMPLATE = "applying_template"
    DONE = "done"
    FATAL = "fatal"


@runtime_checkable
class PhaseReporter(Protocol):
    """Protocol for observing phase transitions."""

    async def report_phase(self, phase: UpdatePhase, **data: Any) -> None:
        """Report a phase transition with optional data."""
        ...


class LoggingPhaseReporter:
    """Phase reporter writing every transition to the log."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    async def report_phase(self, phase: UpdatePhase, **data: Any) -> None:
        if phase is UpdatePhase.FATAL:
            self.log.error(f"Update aborted: {data.get('error', 'unknown error')}")
            return
        details = ", ".join(f"{k}={v}" for k, v in data.items())
        self.log.info(f"Phase {phase.value}" + (f" ({details})" if details else ""))
