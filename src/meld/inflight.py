"""In-flight task counter carried on the host model."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import is_dataclass, replace
from typing import Any, TypeVar

from pydantic import BaseModel

M = TypeVar("M")

DEFAULT_FIELD = "meld_tasks"


def get_in_flight(model: Any, field: str = DEFAULT_FIELD) -> int:
    if isinstance(model, Mapping):
        return int(model[field])
    if not hasattr(model, field):
        raise TypeError(f"{type(model).__name__} has no in-flight counter '{field}'")
    return int(getattr(model, field))


def set_in_flight(model: M, value: int, field: str = DEFAULT_FIELD) -> M:
    """Return a copy of the model with the counter set to value.

    Supports pydantic models, dataclass instances and mappings.
    """
    if isinstance(model, BaseModel):
        return model.model_copy(update={field: value})
    if is_dataclass(model) and not isinstance(model, type):
        return replace(model, **{field: value})
    if isinstance(model, Mapping):
        return {**model, field: value}  # type: ignore[return-value]
    raise TypeError(f"Cannot update in-flight counter on {type(model).__name__}")


def bump_in_flight(model: M, delta: int, field: str = DEFAULT_FIELD) -> M:
    return set_in_flight(model, get_in_flight(model, field) + delta, field)


def in_flight_merge(delta: int, field: str = DEFAULT_FIELD) -> Callable[[M], M]:
    """Merge function adjusting the counter, for hosts that track it themselves."""

    def merge(model: M) -> M:
        return bump_in_flight(model, delta, field)

    return merge
