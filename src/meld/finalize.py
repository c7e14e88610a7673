"""Finalization - fold merges into the host model and issue commands."""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import reduce
from typing import TypeVar

from meld.cmd import Cmd
from meld.config import DEFAULT_CONFIG, MeldConfig
from meld.container import Meld
from meld.inflight import bump_in_flight, get_in_flight, set_in_flight
from meld.result import Result

M = TypeVar("M")
X = TypeVar("X")
Msg = TypeVar("Msg")

logger = logging.getLogger(__name__)


def apply_merges(model: M, meld: Meld[M, X, Msg]) -> M:
    """Replay the container's merges over model, earliest first."""
    return reduce(lambda acc, merge: merge(acc), meld.merges, model)


def run_commands(model: M, meld: Meld[M, X, Msg]) -> Cmd[Msg]:
    """Build every pending command against model and batch them."""
    return Cmd.batch(command(model) for command in meld.commands)


def finish(
    model: M,
    result: Result[M, X, Msg],
    config: MeldConfig | None = None,
    on_error: Callable[[M, X], M] | None = None,
) -> tuple[M, Cmd[Msg]]:
    """Reconcile a completed result with the host's current model.

    Args:
        model: The host's model at the time the result arrives
        result: A result delivered through the host's tagger
        config: Must match the config the batch was launched with
        on_error: Writes the error value into the model on failure

    Returns:
        The final model and the commands to run next

    On failure no merge or command runs. The model carried by the error
    replaces the host model; when tracking, it takes the host counter less
    the tasks the failed result accounts for.
    """
    config = config or DEFAULT_CONFIG

    if not result.ok:
        error = result._require_error()
        logger.debug("finalizing failed result: %r", error.error)
        failed_model = error.model
        if config.track_in_flight:
            remaining = get_in_flight(model, config.counter_field) - result.tasks
            failed_model = set_in_flight(failed_model, remaining, config.counter_field)
        if on_error is not None:
            failed_model = on_error(failed_model, error.error)
        return failed_model, Cmd.none()

    meld = result._require_meld()
    if config.track_in_flight:
        model = bump_in_flight(model, -result.tasks, config.counter_field)
    final_model = apply_merges(model, meld)
    logger.debug(
        "finalized %d task(s): %d merge(s), %d command(s)",
        result.tasks,
        len(meld.merges),
        len(meld.commands),
    )
    return final_model, run_commands(final_model, meld)
