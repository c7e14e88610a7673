"""Attempt - a lazy asynchronous operation yielding a Result."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from meld.container import Meld, Task
from meld.result import MeldError, Result
from meld.trace import Trace

M = TypeVar("M")
X = TypeVar("X")
Msg = TypeVar("Msg")

logger = logging.getLogger(__name__)

Run = Callable[[Trace | None, int | None], Awaitable[Result[M, X, Msg]]]


def _task_name(task: Callable[..., Any]) -> str:
    return getattr(task, "__qualname__", None) or repr(task)


async def _attempt_task(
    task: Task[M, X, Msg],
    meld: Meld[M, X, Msg],
    tasks: int,
    trace: Trace | None,
    parent_id: int | None,
) -> Result[M, X, Msg]:
    """Run one task against a container and report its outcome as a Result."""
    name = _task_name(task)
    event_id: int | None = None
    if trace is not None:
        event_id = trace.record("task_begin", info={"task": name}, parent_id=parent_id)

    start_time = time.perf_counter()
    try:
        returned = await task(meld)
        if not isinstance(returned, Meld):
            raise TypeError(f"task {name} returned {type(returned).__name__}, expected Meld")
        result: Result[M, X, Msg] = Result.Ok(returned, tasks=tasks)
    except MeldError as err:
        result = Result.Err(err, tasks=tasks)
    except Exception as exc:
        logger.warning("task %s raised %r; reporting it as a failure", name, exc)
        result = Result.Err(MeldError(meld.model, exc), tasks=tasks)
    duration_ms = (time.perf_counter() - start_time) * 1000

    if trace is not None:
        trace.record(
            "task_end",
            info={"task": name, "control": result.kind},
            parent_id=event_id,
            duration_ms=duration_ms,
        )
    return result


@dataclass(frozen=True)
class Attempt(Generic[M, X, Msg]):
    """Attempt monad over task functions.

    Nothing runs until run() is awaited. Each run starts from scratch,
    so an Attempt can be awaited more than once.
    """

    _run: Run[M, X, Msg]

    async def run(
        self,
        trace: Trace | None = None,
        parent_id: int | None = None,
    ) -> Result[M, X, Msg]:
        """Run the attempt and return its Result.

        Args:
            trace: Optional trace receiving task events
            parent_id: Trace event the task events hang under

        Returns:
            Ok with the final container, or Err with the first failure
        """
        return await self._run(trace, parent_id)

    def then(self, task: Task[M, X, Msg]) -> Attempt[M, X, Msg]:
        """Chain a task to run on the container the previous step returned.

        The task is skipped when the previous step failed; the failure
        propagates unchanged.
        """

        async def new_run(trace: Trace | None, parent_id: int | None) -> Result[M, X, Msg]:
            current = await self.run(trace, parent_id)
            if not current.ok:
                return current
            return await _attempt_task(
                task, current._require_meld(), current.tasks + 1, trace, parent_id
            )

        return Attempt(_run=new_run)

    @staticmethod
    def succeed(meld: Meld[M, X, Msg]) -> Attempt[M, X, Msg]:
        """An attempt that succeeds with the given container and runs no task."""

        async def run_func(_: Trace | None, __: int | None) -> Result[M, X, Msg]:
            return Result.Ok(meld, tasks=0)

        return Attempt(_run=run_func)

    @staticmethod
    def fail(model: M, error: X) -> Attempt[M, X, Msg]:
        async def run_func(_: Trace | None, __: int | None) -> Result[M, X, Msg]:
            return Result.Err(MeldError(model, error), tasks=0)

        return Attempt(_run=run_func)

    @staticmethod
    def of(task: Task[M, X, Msg], meld: Meld[M, X, Msg]) -> Attempt[M, X, Msg]:
        """An attempt that runs a single task against the given container."""
        return Attempt.succeed(meld).then(task)
