# tests/test_trigger.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from weekly_planner.reminders.expression import ParsedSchedule, next_after, parse_schedule
from weekly_planner.reminders.trigger import JobState, TriggerEngine

from .fakes import START, FakeClock, FlakySink, RecordingSink, settle


def _every_5_min() -> ParsedSchedule:
    parsed = parse_schedule("*/5 * * * *")
    assert isinstance(parsed, ParsedSchedule)
    return parsed


@pytest.mark.asyncio
async def test_job_fires_then_rearms_from_now() -> None:
    clock = FakeClock(START)
    sink = RecordingSink()
    engine = TriggerEngine(sink, clock=clock, title_prefix="Reminder: ")

    job = engine.arm("t1", _every_5_min(), label="Water plants", detail="balcony")
    await settle()
    assert job.next_fire_time == datetime(2024, 1, 1, 10, 5)
    assert sink.shown == []

    await clock.advance(to=datetime(2024, 1, 1, 10, 5))

    assert [(s.label, s.detail) for s in sink.shown] == [("Reminder: Water plants", "balcony")]
    assert job.fire_count == 1
    assert job.state is JobState.ARMED
    assert job.next_fire_time == datetime(2024, 1, 1, 10, 10)

    job.cancel()
    await settle()


@pytest.mark.asyncio
async def test_long_suspension_fires_once_without_backlog() -> None:
    clock = FakeClock(START)
    sink = RecordingSink()
    engine = TriggerEngine(sink, clock=clock)
    parsed = _every_5_min()

    job = engine.arm("t1", parsed, label="stretch")
    await settle()

    # Twelve occurrences (10:05 .. 11:00) are missed while "asleep".
    wake = datetime(2024, 1, 1, 11, 2, 17)
    await clock.advance(to=wake)

    assert len(sink.shown) == 1
    assert job.next_fire_time == next_after(parsed, wake) == datetime(2024, 1, 1, 11, 5)

    await clock.advance(timedelta(minutes=3))
    assert len(sink.shown) == 2

    job.cancel()
    await settle()


@pytest.mark.asyncio
async def test_sink_errors_do_not_kill_the_job() -> None:
    clock = FakeClock(START)
    sink = FlakySink()  # fails every time
    engine = TriggerEngine(sink, clock=clock)

    job = engine.arm("t1", _every_5_min(), label="always failing")
    await settle()

    for _ in range(3):
        await clock.advance(timedelta(minutes=5))

    assert len(sink.attempts) == 3
    assert job.live
    assert job.state is JobState.ARMED
    assert job.fire_count == 3

    job.cancel()
    await settle()


@pytest.mark.asyncio
async def test_unexpected_sink_exception_is_isolated_per_job() -> None:
    clock = FakeClock(START)
    sink = FlakySink(fail_labels={"boom"}, error=KeyError)
    engine = TriggerEngine(sink, clock=clock)

    bad = engine.arm("bad", _every_5_min(), label="boom")
    good = engine.arm("good", _every_5_min(), label="fine")
    await settle()

    await clock.advance(timedelta(minutes=5))
    await clock.advance(timedelta(minutes=5))

    assert sink.shown == ["fine", "fine"]
    assert sink.attempts.count("boom") == 2
    assert bad.live and good.live

    bad.cancel()
    good.cancel()
    await settle()


@pytest.mark.asyncio
async def test_cancel_prevents_any_later_firing() -> None:
    clock = FakeClock(START)
    sink = RecordingSink()
    engine = TriggerEngine(sink, clock=clock)

    job = engine.arm("t1", _every_5_min(), label="x")
    await settle()
    await clock.advance(timedelta(minutes=5))
    assert len(sink.shown) == 1

    assert job.cancel() is True
    assert job.cancel() is False
    for _ in range(6):
        await clock.advance(timedelta(minutes=5))

    assert len(sink.shown) == 1
    assert job.state is JobState.CANCELLED


@pytest.mark.asyncio
async def test_arm_and_cancel_from_another_thread() -> None:
    clock = FakeClock(START)
    sink = RecordingSink()
    engine = TriggerEngine(sink, clock=clock, loop=asyncio.get_running_loop())

    job = await asyncio.to_thread(engine.arm, "t1", _every_5_min(), label="from console")
    await settle()

    await clock.advance(timedelta(minutes=5))
    assert sink.labels() == ["from console"]

    assert await asyncio.to_thread(job.cancel) is True
    await settle()
    await clock.advance(timedelta(minutes=30))

    assert sink.labels() == ["from console"]
    assert job.state is JobState.CANCELLED


def test_arm_without_any_loop_is_an_error() -> None:
    engine = TriggerEngine(RecordingSink(), clock=FakeClock(START))
    with pytest.raises(RuntimeError):
        engine.arm("t1", _every_5_min(), label="x")
