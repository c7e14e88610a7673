import asyncio

from meld import Meld, MeldConfig, Trace, run_concurrent, send, sequence
from fakes import Counter, add, failing, merging, tag


def test_run_concurrent_records_one_branch_per_task() -> None:
    trace = Trace()
    meld = Meld.init(Counter()).with_tasks([merging(add(1)), failing("E")])

    asyncio.run(run_concurrent(meld, trace))

    [begin] = trace.find_all("parallel_begin")
    branches = [ev for ev in trace.get_events() if ev.action.startswith("branch_")]
    assert begin.info == {"tasks": 2}
    assert [ev.info["control"] for ev in branches] == ["ok", "error"]
    assert all(ev.parent_id == begin.id for ev in branches)
    assert len(trace.find_all("parallel_end")) == 1


def test_send_records_task_events_under_the_batch() -> None:
    trace = Trace()
    meld = Meld.init(Counter()).with_tasks([merging(add(1)), merging(add(2))])

    _, cmd = send(meld, tag, MeldConfig(trace=trace))
    asyncio.run(cmd.run())

    [begin] = trace.find_all("parallel_begin")
    task_begins = trace.find_all("task_begin")
    task_ends = trace.find_all("task_end")
    assert len(task_begins) == 2
    assert all(ev.parent_id == begin.id for ev in task_begins)
    assert all(ev.duration_ms is not None for ev in task_ends)
    [end] = trace.find_all("parallel_end")
    branches = [ev.id for ev in trace.get_events() if ev.action.startswith("branch_")]
    assert end.parent_id == begin.id
    assert trace.get_events()[-1] == end
    assert sorted(trace.as_tree()[begin.id]) == sorted(
        [ev.id for ev in task_begins] + branches + [end.id]
    )


def test_building_a_command_records_nothing() -> None:
    trace = Trace()
    meld = Meld.init(Counter()).with_tasks([merging(add(1)), merging(add(2))])

    send(meld, tag, MeldConfig(trace=trace))

    assert len(trace) == 0


def test_each_run_of_a_command_opens_its_own_round() -> None:
    trace = Trace()
    meld = Meld.init(Counter()).with_tasks([merging(add(1)), failing("E")])
    _, cmd = send(meld, tag, MeldConfig(trace=trace))

    asyncio.run(cmd.run())
    asyncio.run(cmd.run())

    begins = trace.find_all("parallel_begin")
    ends = trace.find_all("parallel_end")
    assert len(begins) == 2
    assert [ev.parent_id for ev in ends] == [ev.id for ev in begins]
    for begin in begins:
        children = [ev for ev in trace.get_events() if ev.parent_id == begin.id]
        assert len([ev for ev in children if ev.action.startswith("branch_")]) == 2


def test_sequence_records_begin_and_end() -> None:
    trace = Trace()
    meld = Meld.init(Counter()).with_tasks([merging(add(1)), failing("E"), merging(add(1))])

    _, cmd = sequence(meld, tag, MeldConfig(trace=trace))
    asyncio.run(cmd.run())

    [begin] = trace.find_all("sequence_begin")
    [end] = trace.find_all("sequence_end")
    assert begin.info == {"tasks": 3}
    assert end.info == {"control": "error"}
    assert len(trace.find_all("task_begin")) == 2


def test_disabled_trace_records_nothing() -> None:
    trace = Trace(enabled=False)
    meld = Meld.init(Counter()).with_tasks([merging(add(1))])

    asyncio.run(run_concurrent(meld, trace))

    assert len(trace) == 0


def test_clear_resets_ids() -> None:
    trace = Trace()
    trace.record("a")
    trace.record("b")

    trace.clear()

    assert len(trace) == 0
    assert trace.record("c") == 0
