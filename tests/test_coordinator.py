# tests/test_coordinator.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from weekly_planner.reminders import trigger as trigger_module
from weekly_planner.reminders.coordinator import ReminderCoordinator
from weekly_planner.reminders.expression import InvalidExpressionError
from weekly_planner.reminders.trigger import JobState, TriggerEngine

from .fakes import START, FakeClock, FakeTaskRepo, RecordingSink, make_task, settle


def _coordinator(repo: FakeTaskRepo, clock: FakeClock, sink: RecordingSink) -> ReminderCoordinator:
    return ReminderCoordinator(repo, TriggerEngine(sink, clock=clock))


@pytest.mark.asyncio
async def test_reconcile_schedules_only_valid_expressions() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    repo = FakeTaskRepo(
        [
            make_task("A", "*/5 * * * *"),
            make_task("B", "bogus"),
            make_task("C", ""),
            make_task("D", None),
            make_task("F", "0 0 30 2 *"),
        ]
    )
    coord = _coordinator(repo, clock, sink)

    report = coord.reconcile_all()
    await settle()

    assert report.scheduled == ["A"]
    assert sorted(report.unscheduled) == ["C", "D"]
    assert set(report.invalid) == {"B", "F"}
    assert isinstance(report.invalid["B"], InvalidExpressionError)
    assert report.invalid["F"].reason == "schedule never occurs"
    assert report.total == 5
    assert coord.registry.task_ids() == {"A"}

    coord.shutdown()
    await settle()


@pytest.mark.asyncio
async def test_reconcile_with_unreadable_store_schedules_nothing() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    repo = FakeTaskRepo([make_task("A", "*/5 * * * *")])
    repo.broken = True
    coord = _coordinator(repo, clock, sink)

    report = coord.reconcile_all()

    assert report.total == 0
    assert len(coord.registry) == 0


@pytest.mark.asyncio
async def test_reconcile_drops_stale_jobs() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    repo = FakeTaskRepo([make_task("A", "*/5 * * * *"), make_task("B", "0 9 * * *")])
    coord = _coordinator(repo, clock, sink)
    coord.reconcile_all()
    old_b = coord.registry.get("B")
    assert old_b is not None

    del repo.tasks["B"]
    report = coord.reconcile_all()
    await settle()

    assert report.scheduled == ["A"]
    assert coord.registry.task_ids() == {"A"}
    assert old_b.state is JobState.CANCELLED

    coord.shutdown()
    await settle()


@pytest.mark.asyncio
async def test_update_with_same_schedule_is_idempotent() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    task = make_task("A", "*/5 * * * *")
    coord = _coordinator(FakeTaskRepo([task]), clock, sink)

    first = coord.on_task_created(task)
    second = coord.on_task_updated(task)
    await settle()

    assert first is not None and second is not None
    assert first.state is JobState.CANCELLED
    assert second.next_fire_time == first.next_fire_time == datetime(2024, 1, 1, 10, 5)
    assert coord.active_jobs() == [second]

    # Only the surviving job fires.
    await clock.advance(timedelta(minutes=5))
    assert sink.labels() == ["task A"]

    coord.shutdown()
    await settle()


@pytest.mark.asyncio
async def test_any_event_sequence_keeps_at_most_one_job_per_task() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    coord = _coordinator(FakeTaskRepo(), clock, sink)

    coord.on_task_created(make_task("A", "*/5 * * * *"))
    coord.on_task_updated(make_task("A", "*/10 * * * *"))
    coord.on_task_updated(make_task("A", "0 * * * *"))
    coord.on_task_created(make_task("A", "*/5 * * * *"))
    coord.on_task_updated(make_task("B", "*/5 * * * *"))
    await settle()

    assert coord.registry.task_ids() == {"A", "B"}
    assert len(coord.active_jobs()) == 2

    await clock.advance(timedelta(minutes=5))
    assert sorted(sink.labels()) == ["task A", "task B"]

    coord.shutdown()
    await settle()


@pytest.mark.asyncio
async def test_update_to_empty_schedule_removes_job() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    coord = _coordinator(FakeTaskRepo(), clock, sink)
    job = coord.on_task_created(make_task("A", "*/5 * * * *"))
    assert job is not None

    assert coord.on_task_updated(make_task("A", "   ")) is None
    await settle()

    assert "A" not in coord.registry
    assert not job.live


@pytest.mark.asyncio
async def test_update_to_invalid_schedule_removes_job_and_raises() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    coord = _coordinator(FakeTaskRepo(), clock, sink)
    job = coord.on_task_created(make_task("A", "*/5 * * * *"))
    assert job is not None

    with pytest.raises(InvalidExpressionError):
        coord.on_task_updated(make_task("A", "61 * * * *"))
    await settle()

    assert "A" not in coord.registry
    assert not job.live


def test_create_with_invalid_schedule_leaves_registry_untouched() -> None:
    coord = _coordinator(FakeTaskRepo(), FakeClock(START), RecordingSink())

    with pytest.raises(InvalidExpressionError) as exc:
        coord.on_task_created(make_task("A", "bogus"))

    assert exc.value.expression == "bogus"
    assert len(coord.registry) == 0


def test_create_without_schedule_arms_nothing() -> None:
    coord = _coordinator(FakeTaskRepo(), FakeClock(START), RecordingSink())

    assert coord.on_task_created(make_task("A")) is None
    assert len(coord.registry) == 0


@pytest.mark.asyncio
async def test_deleted_task_never_fires_again() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    coord = _coordinator(FakeTaskRepo(), clock, sink)
    coord.on_task_created(make_task("A", "*/5 * * * *"))
    await settle()

    assert coord.on_task_deleted("A") is True
    for _ in range(5):
        await clock.advance(timedelta(minutes=5))

    assert sink.shown == []
    assert coord.on_task_deleted("A") is False
    assert coord.on_task_deleted("never-existed") is False


def test_preview_occurrences_uses_engine_clock() -> None:
    coord = _coordinator(FakeTaskRepo(), FakeClock(START), RecordingSink())

    times = coord.preview_occurrences("*/5 * * * *", 3)

    assert times == [
        datetime(2024, 1, 1, 10, 5),
        datetime(2024, 1, 1, 10, 10),
        datetime(2024, 1, 1, 10, 15),
    ]
    assert len(coord.preview_occurrences("0 9 * * *")) == 5


def test_preview_occurrences_returns_error_for_bad_expression() -> None:
    coord = _coordinator(FakeTaskRepo(), FakeClock(START), RecordingSink())

    result = coord.preview_occurrences("bogus")

    assert isinstance(result, InvalidExpressionError)
    assert len(coord.registry) == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_every_job() -> None:
    clock, sink = FakeClock(START), RecordingSink()
    coord = _coordinator(FakeTaskRepo(), clock, sink)
    jobs = [coord.on_task_created(make_task(t, "*/5 * * * *")) for t in ("A", "B")]
    await settle()

    assert coord.shutdown() == 2
    await clock.advance(timedelta(hours=1))

    assert sink.shown == []
    assert all(j is not None and not j.live for j in jobs)
    assert coord.shutdown() == 0


def test_impossible_date_is_rejected_on_create_and_preview() -> None:
    coord = _coordinator(FakeTaskRepo(), FakeClock(START), RecordingSink())

    with pytest.raises(InvalidExpressionError):
        coord.on_task_created(make_task("F", "0 0 30 2 *"))
    assert len(coord.registry) == 0

    result = coord.preview_occurrences("0 0 31 4 *", 3)
    assert isinstance(result, InvalidExpressionError)
    assert result.reason == "schedule never occurs"


@pytest.mark.asyncio
async def test_crashed_job_is_dropped_from_active_jobs(monkeypatch: pytest.MonkeyPatch) -> None:
    clock, sink = FakeClock(START), RecordingSink()
    coord = _coordinator(FakeTaskRepo(), clock, sink)
    crashing = coord.on_task_created(make_task("A", "*/5 * * * *"))
    healthy = coord.on_task_created(make_task("B", "0 9 * * *"))
    await settle()

    def broken_next_after(parsed, after):
        raise RuntimeError("clock went backwards")

    # Armed already; the re-arm after the next firing blows up.
    monkeypatch.setattr(trigger_module, "next_after", broken_next_after)
    await clock.advance(timedelta(minutes=5))

    assert sink.labels() == ["task A"]
    assert crashing is not None and not crashing.live
    assert coord.active_jobs() == [healthy]
    assert coord.registry.task_ids() == {"B"}

    coord.shutdown()
    await settle()
