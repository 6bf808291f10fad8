"""
Batched concurrent execution of a remote operation over project keys.
"""

import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from sq_permissions.exceptions import ValidationError
from .error_report import OperationOutcome
from .progress import ProgressCounter
from .tasks import concurrency_limit, gather_or_cancel

logger = logging.getLogger(__name__)

T = TypeVar('T')

BatchOperation = Callable[[list[str]], Awaitable[int]]
IdentifyBatch = Callable[[int, list[str]], str]


def batch_index(index: int, batch: list[str]) -> str:
    return str(index)


def first_key(index: int, batch: list[str]) -> str:
    return batch[0]


def partition(items: Sequence[T], batch_size: int) -> list[list[T]]:
    """
    Split items into consecutive batches of at most batch_size, in order.

    Examples:
        partition("abcdefg", 3) -> [['a', 'b', 'c'], ['d', 'e', 'f'], ['g']]
        partition([], 3) -> []
    """
    if batch_size < 1:
        raise ValidationError(f"batch size must be at least 1, got {batch_size}")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


class BatchedExecutor:
    """
    Runs one operation call per batch, all batches concurrently.

    Each finished batch adds its size to the shared progress counter. A
    returned failure status is recorded in the batch's outcome and does not
    stop the run; an exception raised by the operation cancels the remaining
    batches and propagates.
    """

    def __init__(self, counter: ProgressCounter, max_concurrency: int | None = None):
        self.counter = counter
        self.max_concurrency = max_concurrency

    async def run(
        self,
        items: Sequence[str],
        batch_size: int,
        operation: BatchOperation,
        identify: IdentifyBatch = batch_index,
    ) -> list[OperationOutcome]:
        """
        Args:
            items: Project keys to process
            batch_size: Maximum keys per operation call
            operation: Async call taking a batch and returning a status code
            identify: Names a batch in its outcome from (index, batch);
                the batch index by default

        Returns:
            One outcome per batch, in batch order
        """
        batches = partition(items, batch_size)
        limit = concurrency_limit(self.max_concurrency)

        async def run_batch(index: int, batch: list[str]) -> OperationOutcome:
            async with limit:
                status_code = await operation(batch)
            self.counter.add(len(batch))
            return OperationOutcome(status_code=status_code, identifier=identify(index, batch))

        outcomes = await gather_or_cancel(
            run_batch(index, batch) for index, batch in enumerate(batches)
        )
        logger.info(f"Ran {len(batches)} batches over {len(items)} items")
        return outcomes
