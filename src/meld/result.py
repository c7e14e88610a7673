"""Outcome types for task execution - pure and dependency-free."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

if TYPE_CHECKING:
    from meld.container import Meld

M = TypeVar("M")
X = TypeVar("X")
Msg = TypeVar("Msg")


class MeldError(Exception, Generic[M, X]):
    """Failure of a task.

    Pairs the application model at the point of failure with a
    host-defined error value. Task functions raise it to fail; the
    execution strategies deliver it inside a Result.
    """

    def __init__(self, model: M, error: X) -> None:
        self.model = model
        self.error = error
        super().__init__(error)

    def __repr__(self) -> str:
        return f"MeldError(model={self.model!r}, error={self.error!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MeldError):
            return NotImplemented
        return self.model == other.model and self.error == other.error

    __hash__ = Exception.__hash__


@dataclass(frozen=True)
class Result(Generic[M, X, Msg]):
    """
    Outcome of running tasks.

    Attributes:
        kind: "ok" on success, "error" on failure
        meld: The container returned by the last task (success only)
        error: The task failure (failure only)
        tasks: How many launched tasks this result accounts for
    """

    kind: Literal["ok", "error"]
    meld: Meld[M, X, Msg] | None = None
    error: MeldError[M, X] | None = None
    tasks: int = 1

    @staticmethod
    def Ok(meld: Meld[Any, Any, Any], tasks: int = 1) -> Result[Any, Any, Any]:
        return Result(kind="ok", meld=meld, tasks=tasks)

    @staticmethod
    def Err(error: MeldError[Any, Any], tasks: int = 1) -> Result[Any, Any, Any]:
        return Result(kind="error", error=error, tasks=tasks)

    @property
    def ok(self) -> bool:
        return self.kind == "ok"

    def _require_meld(self) -> Meld[M, X, Msg]:
        if self.meld is None:
            raise ValueError("Result has no container.")
        return self.meld

    def _require_error(self) -> MeldError[M, X]:
        if self.error is None:
            raise ValueError("Result has no error.")
        return self.error
