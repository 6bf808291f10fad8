"""
Bulk update engine.

Provides clean separation of concerns for the bulk permissions update:
- PagedCollector: Concurrent retrieval of a paged listing
- BatchedExecutor: Concurrent batched remote operations with shared progress
- ProgressMonitor: Background progress printing
- ErrorAggregator: Report of soft failures
- PermissionsUpdater: Main orchestration
"""

from .batching import BatchedExecutor, partition
from .error_report import ErrorAggregator, OperationOutcome
from .paging import PagedCollector
from .phases import LoggingPhaseReporter, PhaseReporter, UpdatePhase
from .progress import ProgressCounter, ProgressMonitor
from .updater import PermissionsUpdater

__all__ = [
    "BatchedExecutor",
    "partition",
    "ErrorAggregator",
    "OperationOutcome",
    "PagedCollector",
    "LoggingPhaseReporter",
    "PhaseReporter",
    "UpdatePhase",
    "ProgressCounter",
    "ProgressMonitor",
    "PermissionsUpdater",
]
