import asyncio

import pytest
from pydantic import BaseModel

from meld import (
    Meld,
    MeldConfig,
    bump_in_flight,
    get_in_flight,
    in_flight_merge,
    send,
    sequence,
    set_in_flight,
)
from fakes import Counter, add, failing, merging, settle, tag


class Form(BaseModel):
    username: str = ""
    meld_tasks: int = 0


TRACKED = MeldConfig(track_in_flight=True)


def test_send_bumps_and_finish_restores_counter() -> None:
    start = Counter(meld_tasks=0)
    meld = Meld.init(start).with_tasks([merging(add(1)), merging(add(2)), merging(add(3))])

    launched, cmd = send(meld, tag, TRACKED)
    assert launched.meld_tasks == 3

    final, messages = asyncio.run(settle(launched, cmd, TRACKED))

    assert len(messages) == 3
    assert all(msg.result.tasks == 1 for msg in messages)
    assert final.meld_tasks == 0
    assert final.counter == 6


def test_sequence_settles_the_whole_batch_at_once() -> None:
    meld = Meld.init(Counter(meld_tasks=1)).with_tasks([merging(add(1)), merging(add(1))])

    launched, cmd = sequence(meld, tag, TRACKED)
    assert launched.meld_tasks == 3

    final, messages = asyncio.run(settle(launched, cmd, TRACKED))

    assert messages[0].result.tasks == 2
    assert final.meld_tasks == 1
    assert final.counter == 2


def test_counter_untracked_by_default() -> None:
    meld = Meld.init(Counter(meld_tasks=0)).with_tasks([merging(add(1))])

    launched, _ = send(meld, tag)

    assert launched.meld_tasks == 0


def test_failure_keeps_the_model_at_failure() -> None:
    meld = Meld.init(Counter(meld_tasks=0)).with_tasks([failing("E")])

    launched, cmd = send(meld, tag, TRACKED)
    final, _ = asyncio.run(settle(launched, cmd, TRACKED))

    assert launched.meld_tasks == 1
    assert final.meld_tasks == 0
    assert final.error == "E"


def test_pydantic_model_counter() -> None:
    form = Form(username="ada")

    bumped = bump_in_flight(form, 2)

    assert bumped.meld_tasks == 2
    assert bumped.username == "ada"
    assert form.meld_tasks == 0


def test_mapping_counter_with_custom_field() -> None:
    model = {"pending": 1, "name": "x"}

    updated = set_in_flight(model, 5, field="pending")

    assert updated == {"pending": 5, "name": "x"}
    assert get_in_flight(updated, "pending") == 5
    assert model["pending"] == 1


def test_in_flight_merge() -> None:
    merge = in_flight_merge(-1)

    assert merge(Counter(meld_tasks=2)).meld_tasks == 1


def test_unsupported_model_raises() -> None:
    with pytest.raises(TypeError):
        get_in_flight(object())
    with pytest.raises(TypeError):
        set_in_flight(42, 1)


def test_config_requires_counter_field() -> None:
    with pytest.raises(ValueError):
        MeldConfig(counter_field="")


def test_mixed_concurrent_batch_settles_to_zero() -> None:
    meld = Meld.init(Counter(meld_tasks=0)).with_tasks(
        [merging(add(10), delay=0.02), failing("E")]
    )

    launched, cmd = send(meld, tag, TRACKED)
    final, messages = asyncio.run(settle(launched, cmd, TRACKED))

    assert [msg.result.ok for msg in messages] == [False, True]
    assert final == Counter(counter=10, meld_tasks=0, error="E")


def test_failed_sequence_accounts_for_the_whole_batch() -> None:
    calls: list[str] = []
    meld = Meld.init(Counter(meld_tasks=0)).with_tasks(
        [merging(add(1)), failing("E"), merging(add(1), calls=calls, name="t3")]
    )

    launched, cmd = sequence(meld, tag, TRACKED)
    final, messages = asyncio.run(settle(launched, cmd, TRACKED))

    assert launched.meld_tasks == 3
    assert messages[0].result.tasks == 3
    assert final.meld_tasks == 0
    assert calls == []
