"""Execution configuration."""

from __future__ import annotations

from dataclasses import dataclass

from meld.trace import Trace


@dataclass(frozen=True)
class MeldConfig:
    """
    Options shared by the driving operations and finalization.

    Attributes:
        track_in_flight: Bump the model's counter on launch and settle it on finish
        counter_field: Name of the in-flight counter on the host model
        trace: Optional trace receiving execution events
    """

    track_in_flight: bool = False
    counter_field: str = "meld_tasks"
    trace: Trace | None = None

    def __post_init__(self) -> None:
        if not self.counter_field:
            raise ValueError("counter_field must be a non-empty attribute name")


DEFAULT_CONFIG = MeldConfig()
