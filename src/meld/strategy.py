"""Execution strategies: run pending tasks concurrently or in sequence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from functools import reduce
from typing import Literal, TypeVar

from meld.attempt import Attempt
from meld.cmd import Cmd, Effect
from meld.config import DEFAULT_CONFIG, MeldConfig
from meld.container import Meld
from meld.inflight import bump_in_flight
from meld.result import Result
from meld.trace import Trace

M = TypeVar("M")
X = TypeVar("X")
Msg = TypeVar("Msg")

logger = logging.getLogger(__name__)

Tagger = Callable[[Result[M, X, Msg]], Msg]


def concurrent(meld: Meld[M, X, Msg]) -> tuple[Attempt[M, X, Msg], ...]:
    """One independent attempt per pending task.

    Every attempt receives the same starting container, so merges and
    commands added by one task are invisible to its siblings.
    """
    return tuple(Attempt.of(task, meld) for task in meld.tasks)


def sequential(meld: Meld[M, X, Msg]) -> Attempt[M, X, Msg] | None:
    """Chain pending tasks so each starts only after the previous succeeds.

    Each task receives the container returned by the one before it.
    The single result accounts for the whole batch, failed or not.
    Returns None when there is nothing to run.
    """
    if not meld.tasks:
        return None
    chain = reduce(lambda chain, task: chain.then(task), meld.tasks, Attempt.succeed(meld))
    count = len(meld.tasks)

    async def run_batch(trace: Trace | None, parent_id: int | None) -> Result[M, X, Msg]:
        return replace(await chain.run(trace, parent_id), tasks=count)

    return Attempt(_run=run_batch)


class _ParallelRounds:
    """Brackets each run of a concurrent command with parallel_begin/parallel_end.

    Rounds are counted per launched branch, so running the same command
    twice opens two rounds.
    """

    def __init__(self, trace: Trace, count: int) -> None:
        self._trace = trace
        self._count = count
        self._started = 0
        self._finished = 0
        self._parent: int | None = None

    def begin(self) -> int | None:
        if self._started % self._count == 0:
            self._parent = self._trace.record("parallel_begin", info={"tasks": self._count})
        self._started += 1
        return self._parent

    def end(self, parent_id: int | None) -> None:
        self._finished += 1
        if self._finished % self._count == 0:
            self._trace.record("parallel_end", parent_id=parent_id)



async def run_concurrent(
    meld: Meld[M, X, Msg],
    trace: Trace | None = None,
) -> list[Result[M, X, Msg]]:
    """Run all pending tasks together and gather their results in task order."""
    parallel_id: int | None = None
    if trace is not None:
        parallel_id = trace.record("parallel_begin", info={"tasks": len(meld.tasks)})

    results: list[Result[M, X, Msg]] = await asyncio.gather(
        *(attempt.run(trace, parallel_id) for attempt in concurrent(meld))
    )

    if trace is not None:
        for i, result in enumerate(results):
            trace.record(f"branch_{i}", info={"control": result.kind}, parent_id=parallel_id)
        trace.record("parallel_end", parent_id=parallel_id)

    return results


async def run_sequential(
    meld: Meld[M, X, Msg],
    trace: Trace | None = None,
) -> Result[M, X, Msg] | None:
    """Run pending tasks one after another; None when there are none."""
    chain = sequential(meld)
    if chain is None:
        return None
    return await _traced_sequence(chain, len(meld.tasks), trace)


async def _traced_sequence(
    chain: Attempt[M, X, Msg],
    count: int,
    trace: Trace | None,
) -> Result[M, X, Msg]:
    sequence_id: int | None = None
    if trace is not None:
        sequence_id = trace.record("sequence_begin", info={"tasks": count})

    result = await chain.run(trace, sequence_id)

    if trace is not None:
        trace.record("sequence_end", info={"control": result.kind}, parent_id=sequence_id)
    return result


def _launch_model(meld: Meld[M, X, Msg], config: MeldConfig) -> M:
    if config.track_in_flight:
        return bump_in_flight(meld.model, len(meld.tasks), config.counter_field)
    return meld.model


def cmds(
    meld: Meld[M, X, Msg],
    tagger: Tagger[M, X, Msg],
    config: MeldConfig | None = None,
) -> Cmd[Msg]:
    """Command running every pending task concurrently.

    The command reports one message per task, in completion order.
    """
    config = config or DEFAULT_CONFIG
    if not meld.tasks:
        return Cmd.none()
    trace = config.trace
    rounds = _ParallelRounds(trace, len(meld.tasks)) if trace is not None else None

    def branch(index: int, attempt: Attempt[M, X, Msg]) -> Effect[Msg]:
        async def effect() -> Msg:
            if rounds is None:
                return tagger(await attempt.run())
            parallel_id = rounds.begin()
            result = await attempt.run(trace, parallel_id)
            trace.record(f"branch_{index}", info={"control": result.kind}, parent_id=parallel_id)
            rounds.end(parallel_id)
            return tagger(result)

        return effect

    return Cmd.batch(Cmd.of(branch(i, attempt)) for i, attempt in enumerate(concurrent(meld)))


def send(
    meld: Meld[M, X, Msg],
    tagger: Tagger[M, X, Msg],
    config: MeldConfig | None = None,
) -> tuple[M, Cmd[Msg]]:
    """Launch pending tasks concurrently.

    Returns the model to show while tasks are in flight and the command
    the host must run. The host finalizes each task's result separately.
    """
    config = config or DEFAULT_CONFIG
    if not meld.tasks:
        return meld.model, Cmd.none()
    logger.debug("launching %d task(s) concurrently", len(meld.tasks))
    return _launch_model(meld, config), cmds(meld, tagger, config)


def cmdseq(
    meld: Meld[M, X, Msg],
    tagger: Tagger[M, X, Msg],
    config: MeldConfig | None = None,
) -> Cmd[Msg]:
    """Command running pending tasks in order; it reports a single message."""
    config = config or DEFAULT_CONFIG
    chain = sequential(meld)
    if chain is None:
        return Cmd.none()
    count = len(meld.tasks)

    async def effect() -> Msg:
        return tagger(await _traced_sequence(chain, count, config.trace))

    return Cmd.of(effect)


def sequence(
    meld: Meld[M, X, Msg],
    tagger: Tagger[M, X, Msg],
    config: MeldConfig | None = None,
) -> tuple[M, Cmd[Msg]]:
    """Launch pending tasks in order, stopping at the first failure."""
    config = config or DEFAULT_CONFIG
    if not meld.tasks:
        return meld.model, Cmd.none()
    logger.debug("launching %d task(s) in sequence", len(meld.tasks))
    return _launch_model(meld, config), cmdseq(meld, tagger, config)


def update(
    meld: Meld[M, X, Msg],
    tagger: Tagger[M, X, Msg],
    *,
    mode: Literal["concurrent", "sequential"] = "concurrent",
    config: MeldConfig | None = None,
) -> tuple[M, Cmd[Msg]]:
    """Drive a batch with the chosen strategy."""
    if mode == "concurrent":
        return send(meld, tagger, config)
    if mode == "sequential":
        return sequence(meld, tagger, config)
    raise ValueError(f"Unknown execution mode: {mode!r}")
