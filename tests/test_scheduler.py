"""Unit tests for the summary scheduler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tagdigest.errors import PublicationFailure, SummarizationFailure
from tagdigest.models import OutcomeStatus
from tagdigest.scheduler import SummaryScheduler, format_summary_post

DESTINATION = 555


@pytest.fixture
def summarizer():
    summarizer = AsyncMock()
    summarizer.generate_summary = AsyncMock(return_value="A fine summary.")
    return summarizer


@pytest.fixture
def publisher():
    publisher = AsyncMock()
    publisher.publish = AsyncMock()
    return publisher


@pytest.fixture
def scheduler(store, summarizer, publisher):
    return SummaryScheduler(store, summarizer, publisher, DESTINATION, interval_seconds=3600)


class TestRunTick:
    @pytest.mark.asyncio
    async def test_empty_store(self, scheduler, summarizer):
        assert await scheduler.run_tick() == []
        summarizer.generate_summary.assert_not_called()
        assert scheduler.ticks_completed == 1

    @pytest.mark.asyncio
    async def test_success_publishes_and_clears(
        self, scheduler, store, summarizer, publisher, make_message
    ):
        msgs = [make_message("[X] one"), make_message("[X] two")]
        for m in msgs:
            store.store("X", m)

        outcomes = await scheduler.run_tick()

        assert [(o.project, o.status, o.message_count) for o in outcomes] == [
            ("X", OutcomeStatus.PUBLISHED, 2)
        ]
        summarizer.generate_summary.assert_awaited_once_with("X", msgs)
        publisher.publish.assert_awaited_once_with(
            DESTINATION, format_summary_post("X", "A fine summary.")
        )
        assert store.has_messages("X") is False
        assert "X" in store.known_projects()

    @pytest.mark.asyncio
    async def test_projects_processed_in_sorted_order(
        self, scheduler, store, summarizer, make_message
    ):
        for name in ("Zebra", "Alpha", "Beta"):
            store.store(name, make_message())
        outcomes = await scheduler.run_tick()
        assert [o.project for o in outcomes] == ["Alpha", "Beta", "Zebra"]
        assert [c.args[0] for c in summarizer.generate_summary.await_args_list] == [
            "Alpha",
            "Beta",
            "Zebra",
        ]

    @pytest.mark.asyncio
    async def test_summarization_failure_then_success(
        self, scheduler, store, summarizer, publisher, make_message
    ):
        store.store("X", make_message("first"))
        store.store("X", make_message("second"))
        summarizer.generate_summary.side_effect = [
            SummarizationFailure("service down", project="X", message_count=2),
            "Recovered summary.",
        ]

        outcomes = await scheduler.run_tick()
        assert outcomes[0].status is OutcomeStatus.SUMMARIZE_FAILED
        assert "service down" in outcomes[0].error
        assert store.has_messages("X") is True
        assert store.message_count("X") == 2
        publisher.publish.assert_not_called()

        store.store("X", make_message("third"))
        outcomes = await scheduler.run_tick()
        assert outcomes[0].status is OutcomeStatus.PUBLISHED
        assert outcomes[0].message_count == 3
        assert store.has_messages("X") is False

    @pytest.mark.asyncio
    async def test_publication_failure_keeps_backlog(
        self, scheduler, store, publisher, make_message
    ):
        store.store("X", make_message())
        publisher.publish.side_effect = PublicationFailure("forbidden", destination=DESTINATION)

        outcomes = await scheduler.run_tick()

        assert outcomes[0].status is OutcomeStatus.PUBLISH_FAILED
        assert store.message_count("X") == 1

    @pytest.mark.asyncio
    async def test_failures_isolated_per_project(
        self, scheduler, store, summarizer, publisher, make_message
    ):
        store.store("Alpha", make_message())
        store.store("Beta", make_message())
        store.store("Gamma", make_message())

        async def summarize(project, messages):
            if project == "Alpha":
                raise RuntimeError("unexpected")
            return f"summary for {project}"

        summarizer.generate_summary.side_effect = summarize
        publisher.publish.side_effect = [PublicationFailure("nope"), None]

        outcomes = await scheduler.run_tick()

        assert {o.project: o.status for o in outcomes} == {
            "Alpha": OutcomeStatus.SUMMARIZE_FAILED,
            "Beta": OutcomeStatus.PUBLISH_FAILED,
            "Gamma": OutcomeStatus.PUBLISHED,
        }
        assert store.active_projects() == ["Alpha", "Beta"]

    @pytest.mark.asyncio
    async def test_skips_project_drained_elsewhere(self, scheduler, store, summarizer):
        outcome = await scheduler.process_project("Ghost")
        assert outcome.status is OutcomeStatus.SKIPPED
        assert outcome.ok
        summarizer.generate_summary.assert_not_called()

    @pytest.mark.asyncio
    async def test_drain_error_isolated_per_project(
        self, scheduler, store, summarizer, make_message
    ):
        store.store("A", make_message("a1"))
        store.store("A", make_message("a2"))
        store.store("B", make_message("b1"))
        replacement = make_message("a-new")

        async def summarize(project, messages):
            if project == "A":
                # Another actor drains A while its summary is in flight
                store.reset()
                store.store("A", replacement)
                store.store("B", make_message("b1"))
            return f"summary for {project}"

        summarizer.generate_summary.side_effect = summarize

        outcomes = await scheduler.run_tick()

        assert {o.project: o.status for o in outcomes} == {
            "A": OutcomeStatus.CLEAR_FAILED,
            "B": OutcomeStatus.PUBLISHED,
        }
        assert "Cannot drain 2 messages" in outcomes[0].error
        assert store.get_messages("A") == [replacement]
        assert store.has_messages("B") is False
        assert scheduler.ticks_completed == 1

    @pytest.mark.asyncio
    async def test_loop_tick_survives_unexpected_error(self, scheduler, store):
        store.active_projects = MagicMock(side_effect=RuntimeError("store exploded"))
        await scheduler._on_tick()
        assert scheduler.ticks_completed == 0


class TestDrainDiscipline:
    @staticmethod
    def _arrival_during_summary(store, summarizer, make_message):
        late = make_message("late arrival")

        async def summarize(project, messages):
            store.store(project, late)
            await asyncio.sleep(0)
            return "summary"

        summarizer.generate_summary.side_effect = summarize
        return late

    @pytest.mark.asyncio
    async def test_precise_drain_keeps_late_messages(
        self, scheduler, store, summarizer, make_message
    ):
        store.store("X", make_message("early"))
        late = self._arrival_during_summary(store, summarizer, make_message)

        outcomes = await scheduler.run_tick()

        assert outcomes[0].status is OutcomeStatus.PUBLISHED
        assert outcomes[0].message_count == 1
        assert store.get_messages("X") == [late]

    @pytest.mark.asyncio
    async def test_coarse_drain_clears_everything(
        self, store, summarizer, publisher, make_message
    ):
        scheduler = SummaryScheduler(
            store, summarizer, publisher, DESTINATION, precise_drain=False
        )
        store.store("X", make_message("early"))
        self._arrival_during_summary(store, summarizer, make_message)

        await scheduler.run_tick()

        assert store.get_messages("X") == []


class TestSerialization:
    @pytest.mark.asyncio
    async def test_ticks_never_overlap(self, scheduler, store, summarizer, make_message):
        store.store("X", make_message())
        in_flight = 0
        max_in_flight = 0

        async def summarize(project, messages):
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return "summary"

        summarizer.generate_summary.side_effect = summarize

        first, second = await asyncio.gather(scheduler.run_tick(), scheduler.run_tick())

        assert max_in_flight == 1
        assert [o.status for o in first] == [OutcomeStatus.PUBLISHED]
        # The second tick starts after the first drained X
        assert second == []
        assert scheduler.ticks_completed == 2


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, scheduler):
        assert scheduler.is_running() is False
        scheduler.start()
        loop = scheduler._loop
        scheduler.start()
        assert scheduler._loop is loop
        assert scheduler.is_running() is True
        assert scheduler.get_status()["is_running"] is True

        scheduler.stop()
        assert scheduler.is_running() is False
        loop.cancel()

    @pytest.mark.asyncio
    async def test_stop_when_not_started(self, scheduler):
        scheduler.stop()
        scheduler.stop()
        assert scheduler.is_running() is False

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, scheduler):
        scheduler.start()
        first = scheduler._loop
        scheduler.stop()
        scheduler.start()
        assert scheduler.is_running() is True
        assert scheduler._loop is not first
        scheduler.stop()
        first.cancel()
        scheduler._loop.cancel()

    @pytest.mark.asyncio
    async def test_stop_lets_in_flight_tick_finish(
        self, scheduler, store, summarizer, make_message
    ):
        store.store("X", make_message())
        release = asyncio.Event()

        async def summarize(project, messages):
            await release.wait()
            return "summary"

        summarizer.generate_summary.side_effect = summarize

        tick = asyncio.create_task(scheduler.run_tick())
        await asyncio.sleep(0)
        assert scheduler.get_status()["tick_in_flight"] is True

        scheduler.stop()
        release.set()
        outcomes = await tick

        assert outcomes[0].status is OutcomeStatus.PUBLISHED
        assert scheduler.get_status()["tick_in_flight"] is False


@pytest.mark.asyncio
async def test_status_reports_last_tick(scheduler, store, summarizer, make_message):
    store.store("A", make_message())
    store.store("B", make_message())
    summarizer.generate_summary.side_effect = [
        "ok",
        SummarizationFailure("down"),
    ]
    await scheduler.run_tick()

    status = scheduler.get_status()
    assert status["ticks_completed"] == 1
    assert status["last_tick_at"] is not None
    assert status["last_tick"] == {"published": 1, "summarize_failed": 1}
    assert status["interval_seconds"] == 3600
    assert status["precise_drain"] is True
