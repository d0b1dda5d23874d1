"""
Concurrent fetch-and-merge for Info Hub Aggregator.

Runs independent upstream fetches side by side and merges whatever succeeded
into one deterministically ordered result. Individual failures degrade the
result; only a batch in which every task failed is an error.
"""

import asyncio
from dataclasses import dataclass, field
from typing import (
    Any, Awaitable, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar
)

from ..core.logging_config import create_logger

logger = create_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchTask(Generic[T]):
    """One independent unit of upstream work."""
    identifier: str
    operation: Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class TaskFailure:
    identifier: str
    reason: str

    def __str__(self) -> str:
        return f"{self.identifier}: {self.reason}"


@dataclass(frozen=True)
class TaskOutcome(Generic[T]):
    """Result slot for a single task: either a value or a failure reason."""
    identifier: str
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AggregateResult(Generic[T]):
    """Merged output of one fan-out run."""
    successes: List[T] = field(default_factory=list)
    failures: List[TaskFailure] = field(default_factory=list)
    succeeded: List[str] = field(default_factory=list)
    total: int = 0

    @property
    def is_partial(self) -> bool:
        return bool(self.failures) and bool(self.succeeded)


class AggregateError(Exception):
    """Raised when every task of a non-empty fan-out failed."""

    def __init__(self, failures: Sequence[TaskFailure], label: str = "aggregation"):
        self.failures = list(failures)
        self.label = label
        self.message = f"All {len(self.failures)} {label} tasks failed: " + "; ".join(
            str(failure) for failure in self.failures
        )
        super().__init__(self.message)

    @property
    def identifiers(self) -> List[str]:
        return [failure.identifier for failure in self.failures]


@dataclass(frozen=True)
class _Entry:
    identifier: str
    position: int
    value: Any


def _describe(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or exc.__class__.__name__


class FanOutAggregator:
    """Concurrent fetch-and-merge with partial-failure tolerance."""

    def __init__(self, label: str = "aggregation"):
        self.label = label

    async def run(
        self,
        tasks: Sequence[FetchTask[Any]],
        sort_key: Optional[Callable[[Any], Any]] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        flatten: bool = False
    ) -> AggregateResult[Any]:
        """Run every task concurrently and merge the outcomes.

        Args:
            tasks: Independent fetch tasks; all are started at once.
            sort_key: Key applied to each merged value. Ties are broken by
                (task identifier, position within task), so the output never
                depends on completion order. Without a key, values keep
                task-list order.
            descending: Sort newest/largest first.
            limit: Keep at most this many merged values after sorting.
            flatten: Treat each task value as an iterable of values to merge.

        Returns:
            AggregateResult with sorted successes and every recorded failure.

        Raises:
            AggregateError: The task list was non-empty and every task failed.
        """
        if not tasks:
            return AggregateResult()

        outcomes: List[TaskOutcome[Any]] = await asyncio.gather(
            *(self._settle(task) for task in tasks)
        )

        # Barrier reached: partition outcomes in task-list order.
        failures = [
            TaskFailure(outcome.identifier, outcome.error)
            for outcome in outcomes if not outcome.ok
        ]
        succeeded = [outcome.identifier for outcome in outcomes if outcome.ok]

        if not succeeded:
            logger.error("All fan-out tasks failed", extra={
                "label": self.label,
                "failures": [str(failure) for failure in failures]
            })
            raise AggregateError(failures, self.label)

        for failure in failures:
            logger.warning("Fan-out task failed", extra={
                "label": self.label,
                "identifier": failure.identifier,
                "error": failure.reason
            })

        entries = self._collect(outcomes, flatten)
        if sort_key is not None:
            # Two stable passes: tiebreak first, then the caller's key.
            entries.sort(key=lambda entry: (entry.identifier, entry.position))
            entries.sort(key=lambda entry: sort_key(entry.value), reverse=descending)

        values = [entry.value for entry in entries]
        total = len(values)
        if limit is not None:
            values = values[:limit]

        logger.info("Fan-out completed", extra={
            "label": self.label,
            "tasks": len(tasks),
            "succeeded": len(succeeded),
            "failed": len(failures),
            "merged": total
        })

        return AggregateResult(
            successes=values,
            failures=failures,
            succeeded=succeeded,
            total=total
        )

    async def _settle(self, task: FetchTask[Any]) -> TaskOutcome[Any]:
        """Run one task, converting any failure into a recorded reason."""
        try:
            value = await task.operation()
        except Exception as e:
            return TaskOutcome(identifier=task.identifier, error=_describe(e))
        return TaskOutcome(identifier=task.identifier, value=value)

    @staticmethod
    def _collect(outcomes: Iterable[TaskOutcome[Any]], flatten: bool) -> List[_Entry]:
        entries: List[_Entry] = []
        for outcome in outcomes:
            if not outcome.ok:
                continue
            if flatten:
                for position, value in enumerate(outcome.value or ()):
                    entries.append(_Entry(outcome.identifier, position, value))
            else:
                entries.append(_Entry(outcome.identifier, 0, outcome.value))
        return entries
