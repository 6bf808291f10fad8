"""
Per-operation outcomes and the report of the failed ones.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, TextIO

logger = logging.getLogger(__name__)

# Any status code from here on counts as a failed operation
FAILURE_STATUS_THRESHOLD = 300

MessageTemplate = Callable[[int, str], str]


@dataclass(frozen=True)
class OperationOutcome:
    """Status code of one remote operation and what it was applied to."""

    status_code: int
    identifier: str  # project key or batch index

    @property
    def failed(self) -> bool:
        return self.status_code >= FAILURE_STATUS_THRESHOLD


class ErrorAggregator:
    """
    Prints one line per failed outcome to the error stream.

    Purely observational: reporting never raises on failed outcomes and
    the caller continues no matter how many were reported.
    """

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream if stream is not None else sys.stderr

    def report(
        self,
        outcomes: Iterable[OperationOutcome],
        message: MessageTemplate,
        log_field: str = "project",
    ) -> list[OperationOutcome]:
        """
        Report every failed outcome.

        Args:
            outcomes: Outcomes of a finished phase
            message: Builds the line for (status_code, identifier)
            log_field: CSV log column holding the identifier ("project" or "batch")

        Returns:
            The failed outcomes, in the order they were given
        """
        failures = [outcome for outcome in outcomes if outcome.failed]
        for outcome in failures:
            line = message(outcome.status_code, outcome.identifier)
            print(line, file=self.stream, flush=True)
            # Already printed on the error stream, so kept out of the console log
            logger.info(
                line,
                extra={
                    log_field: outcome.identifier,
                    "error": outcome.status_code,
                    "console": False,
                },
            )
        return failures
