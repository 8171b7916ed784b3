"""Sequential batch execution with a fixed inter-batch delay.

Scoring and card generation send one model call per batch and deliberately
wait for each call to settle before issuing the next, pausing briefly in
between. That keeps the app under the provider's request-rate limits at the
cost of latency that grows linearly with batch count.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from masterflasher_core.schemas.results import Outcome, PartialFailure, StageReport
from masterflasher_core.utils.logging import get_logger
from masterflasher_core.utils.retry import describe_exception

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Sleep = Callable[[float], Awaitable[None]]


def make_batches(items: Sequence[T], batch_size: int) -> list[list[T]]:
    """Split items into consecutive batches of at most ``batch_size``."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


async def run_batches_sequentially(
    batches: list[list[T]],
    worker: Callable[[list[T], int, int], Awaitable[Outcome[list[R]]]],
    report: StageReport,
    delay_seconds: float,
    sleep: Sleep = asyncio.sleep,
) -> list[R]:
    """Run ``worker`` over each batch in order, one call at a time.

    A worker returning ``PartialFailure`` (or raising) contributes nothing and
    processing moves on to the next batch.

    Args:
        batches: Batches to process, in submission order
        worker: Coroutine ``(batch, index, total) -> Outcome[list[R]]``
        report: Stage report that receives every outcome
        delay_seconds: Pause between consecutive batches
        sleep: Delay primitive

    Returns:
        Concatenated results in batch order
    """
    total = len(batches)
    results: list[R] = []

    for index, batch in enumerate(batches):
        try:
            outcome = await worker(batch, index, total)
        except Exception as e:
            outcome = PartialFailure(describe_exception(e), unit=f"batch {index + 1}/{total}")
            logger.error(f"Batch {index + 1}/{total} failed: {outcome.reason}")

        report.record(outcome)
        if isinstance(outcome, PartialFailure):
            logger.warning(f"Batch {index + 1}/{total} produced no output: {outcome.reason}")
        else:
            results.extend(outcome.value)

        if index < total - 1 and delay_seconds > 0:
            logger.debug(f"Waiting {delay_seconds}s before batch {index + 2}/{total}")
            await sleep(delay_seconds)

    return results
