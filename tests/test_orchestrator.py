from __future__ import annotations

import asyncio

import pytest

from conftest import FakeApi, FakeSession, context_for, profile_urls
from profile_scraper_pkg.errors import AlreadyRunning, BatchRejected, TabTimeout
from profile_scraper_pkg.models import Outcome
from profile_scraper_pkg.navigation import TabController
from profile_scraper_pkg.orchestrator import BatchOrchestrator, RetryPolicy


def make_orchestrator(context, api=None, delay_ms=0, max_attempts=2, tab_timeout_ms=1000):
    tabs = TabController(FakeSession(context), settle_delay_ms=0, poll_interval_ms=5, block_images=False, scroll=False)
    return BatchOrchestrator(
        tabs,
        api or FakeApi(),
        retry_policy=RetryPolicy(max_attempts=max_attempts, backoff_ms=0),
        delay_ms=delay_ms,
        tab_timeout_ms=tab_timeout_ms,
    )


def test_all_profiles_created_one_tab_at_a_time():
    context = context_for("a", "b", "c")
    orchestrator = make_orchestrator(context)
    events = []
    orchestrator.add_progress_listener(events.append)

    result = asyncio.run(orchestrator.run_batch(profile_urls("a", "b", "c")))

    summary = result.summary
    assert (summary.total, summary.processed, summary.success, summary.errors, summary.duplicates) == (3, 3, 3, 0, 0)
    assert not summary.cancelled
    assert [e.processed for e in events] == [1, 2, 3]
    assert [e.progress for e in events] == [33, 67, 100]
    assert events[-1].current_url == profile_urls("c")[0]
    assert context.max_open == 1
    assert context.open_count == 0
    assert [o.name for o in result.successful] == ["A", "B", "C"]
    assert not orchestrator.is_running


def test_repeated_url_is_duplicate():
    context = context_for("a")
    url = profile_urls("a")[0]
    orchestrator = make_orchestrator(context)

    result = asyncio.run(orchestrator.run_batch([url, url]))

    assert [o.outcome for o in result.outcomes] == [Outcome.CREATED, Outcome.DUPLICATE]
    assert result.summary.duplicates == 1
    assert result.summary.success_rate == 50


def test_timeout_exhausts_retries_and_batch_continues():
    slow = profile_urls("slow")[0]
    context = context_for("slow", "ok", ready_states={slow: ("loading",)})
    orchestrator = make_orchestrator(context, tab_timeout_ms=30)

    result = asyncio.run(orchestrator.run_batch([slow, profile_urls("ok")[0]]))

    failed = result.failed[0]
    assert failed.url == slow
    assert failed.attempts == 2
    assert failed.error == "Failed after 2 attempts: Tab load timed out after 30ms"
    assert result.summary.success == 1
    assert context.visited.count(slow) == 2
    assert context.open_count == 0


def test_retry_recovers_after_transient_failure():
    url = profile_urls("flaky")[0]
    context = context_for("flaky")
    tabs = TabController(FakeSession(context), settle_delay_ms=0, poll_interval_ms=5, block_images=False, scroll=False)
    calls = []
    real = tabs.open_and_extract

    async def flaky(target, timeout_ms):
        calls.append(target)
        if len(calls) == 1:
            raise TabTimeout("Tab load timed out after 10ms")
        return await real(target, timeout_ms)

    tabs.open_and_extract = flaky
    orchestrator = BatchOrchestrator(tabs, FakeApi(), retry_policy=RetryPolicy(max_attempts=2, backoff_ms=0), delay_ms=0)

    result = asyncio.run(orchestrator.run_batch([url]))

    assert result.outcomes[0].outcome == Outcome.CREATED
    assert result.outcomes[0].attempts == 2


def test_api_failures_become_error_outcomes():
    urls = profile_urls("a", "b", "c")
    context = context_for("a", "b", "c")
    api = FakeApi(fail_urls=[urls[0]], raise_urls=[urls[1]])
    orchestrator = make_orchestrator(context, api=api)

    result = asyncio.run(orchestrator.run_batch(urls))

    assert [o.outcome for o in result.outcomes] == [Outcome.ERROR, Outcome.ERROR, Outcome.CREATED]
    assert result.outcomes[0].error == "Validation failed"
    assert result.outcomes[1].error == "connection reset"
    assert result.summary.errors == 2


def test_stop_after_k_urls():
    slugs = ("a", "b", "c", "d", "e")
    context = context_for(*slugs)
    orchestrator = make_orchestrator(context, delay_ms=2000)

    def stop_after_two(event):
        if event.processed == 2:
            assert orchestrator.stop()

    orchestrator.add_progress_listener(stop_after_two)
    result = asyncio.run(orchestrator.run_batch(profile_urls(*slugs)))

    assert result.summary.processed == 2
    assert result.summary.cancelled
    assert context.visited == profile_urls("a", "b")
    assert context.open_count == 0
    assert result.summary.elapsed_ms < 2000
    assert not orchestrator.is_running


def test_second_batch_while_running_is_rejected():
    context = context_for("a", "b")
    orchestrator = make_orchestrator(context, delay_ms=2000)

    async def scenario():
        task = asyncio.create_task(orchestrator.run_batch(profile_urls("a", "b")))
        await asyncio.sleep(0.05)
        status = orchestrator.status()
        with pytest.raises(AlreadyRunning):
            await orchestrator.run_batch(profile_urls("a"))
        orchestrator.stop()
        return status, await task

    status, result = asyncio.run(scenario())
    assert status["isProcessing"] is True
    assert status["processedCount"] == 1
    assert status["totalUrls"] == 2
    assert result.summary.cancelled
    assert orchestrator.status()["isProcessing"] is False


def test_empty_batch_rejected():
    orchestrator = make_orchestrator(context_for())
    with pytest.raises(BatchRejected):
        asyncio.run(orchestrator.run_batch([]))


def test_stop_without_batch():
    assert make_orchestrator(context_for()).stop() is False


def test_failing_listener_does_not_break_batch():
    context = context_for("a", "b", "c")
    orchestrator = make_orchestrator(context)
    seen = []

    def broken(event):
        raise ValueError("listener bug")

    async def async_listener(event):
        seen.append(event.processed)

    orchestrator.add_progress_listener(broken)
    orchestrator.add_progress_listener(async_listener)
    result = asyncio.run(orchestrator.run_batch(profile_urls("a", "b", "c")))

    assert result.summary.success == 3
    assert seen == [1, 2, 3]


def test_result_dict_groups_outcomes():
    context = context_for("a", "b")
    url_a, url_b = profile_urls("a", "b")
    orchestrator = make_orchestrator(context, api=FakeApi(fail_urls=[url_b]))

    data = asyncio.run(orchestrator.run_batch([url_a, url_a, url_b])).to_dict()

    assert data["summary"]["successRate"] == 33
    assert [o["url"] for o in data["successful"]] == [url_a]
    assert [o["url"] for o in data["skipped"]] == [url_a]
    assert [o["url"] for o in data["failed"]] == [url_b]
    assert data["successful"][0]["profileId"] == 1
