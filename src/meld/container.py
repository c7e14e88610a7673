"""The Meld container - accumulates tasks, merges and commands for one batch."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from typing import Generic, TypeVar

from meld.cmd import Cmd

M = TypeVar("M")
X = TypeVar("X")
Msg = TypeVar("Msg")


Merge = Callable[[M], M]
Command = Callable[[M], Cmd[Msg]]


@dataclass(frozen=True)
class Meld(Generic[M, X, Msg]):
    """
    Composition container for one batch of asynchronous operations.

    Immutable - every accumulator returns a new container.

    Attributes:
        app_model: Current application model snapshot
        tasks: Pending task functions, in call order
        merges: Model transformations to replay at finalization, in call order
        commands: Functions producing commands from the finalized model
    """

    app_model: M
    tasks: tuple[Task[M, X, Msg], ...] = ()
    merges: tuple[Merge[M], ...] = ()
    commands: tuple[Command[M, Msg], ...] = ()

    @staticmethod
    def init(model: M) -> Meld[M, X, Msg]:
        """Start an empty batch from the given model."""
        return Meld(app_model=model)

    @property
    def model(self) -> M:
        return self.app_model

    def with_tasks(self, fns: Iterable[Task[M, X, Msg]]) -> Meld[M, X, Msg]:
        """Append task functions after the ones already pending."""
        return replace(self, tasks=self.tasks + tuple(fns))

    add_tasks = with_tasks

    def with_merge(self, fn: Merge[M]) -> Meld[M, X, Msg]:
        """Apply a merge to the live model now and record it for finalization.

        Later tasks in the same chain see the merged model through `model`.
        """
        return replace(self, app_model=fn(self.app_model), merges=self.merges + (fn,))

    def with_cmds(self, fns: Iterable[Command[M, Msg]]) -> Meld[M, X, Msg]:
        """Append command functions, run against the finalized model."""
        return replace(self, commands=self.commands + tuple(fns))


Task = Callable[[Meld[M, X, Msg]], Awaitable[Meld[M, X, Msg]]]


def init(model: M) -> Meld[M, X, Msg]:
    return Meld.init(model)


def model(meld: Meld[M, X, Msg]) -> M:
    return meld.app_model
