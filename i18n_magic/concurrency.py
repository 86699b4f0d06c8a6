"""Run one coroutine per item concurrently and collect what succeeded and what failed."""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

from tqdm.asyncio import tqdm

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


@dataclass
class TaskResult(Generic[T, R]):
    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_results(
        items: Iterable[T],
        func: Callable[[T], Awaitable[R]],
        desc: Optional[str] = None,
        show_progress: bool = False
) -> List[TaskResult]:
    """
    Run ``func(item)`` for every item concurrently and wait for all of them.

    A failing task does not cancel its siblings: every task runs to
    completion and its outcome is recorded. Results come back in item order.

    Args:
        items: The work items, e.g. (locale, namespace) pairs.
        func: Coroutine function applied to each item.
        desc: Progress bar label.
        show_progress: Whether to draw a tqdm progress bar.

    Returns:
        One TaskResult per item.
    """
    items = list(items)

    async def _run(item: T) -> TaskResult:
        try:
            return TaskResult(item=item, value=await func(item))
        except Exception as exc:
            logger.debug("Task for %r failed: %s", item, exc)
            return TaskResult(item=item, error=exc)

    if not items:
        return []
    return await tqdm.gather(
        *(_run(item) for item in items),
        desc=desc,
        disable=not show_progress,
        leave=False,
    )


def raise_for_failures(results: List[TaskResult]) -> List[Any]:
    """Re-raise the first failure, otherwise return the values in order."""
    failures = [result for result in results if not result.ok]
    if failures:
        if len(failures) > 1:
            logger.error("%d of %d tasks failed; reporting the first one.", len(failures), len(results))
        raise failures[0].error
    return [result.value for result in results]
