"""Message API between the control UI and the batch orchestrator.

Requests are `{"action": ..., "data": ...}` dicts and every reply is shaped
`{"success": bool, "data"?: ..., "error"?: str}`. Progress is pushed to
subscribers as `progressUpdate` messages.
"""
import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from .config import MIN_BATCH_SIZE, STATISTICS_FILE
from .errors import BatchError
from .models import BatchSummary, ExtensionStatistics, Outcome, ProgressEvent, UrlOutcome
from .urls import normalize_urls


logger = logging.getLogger(__name__)


def describe_outcome(outcome: UrlOutcome) -> str:
    if outcome.outcome == Outcome.CREATED:
        return f"✅ Created: {outcome.name or outcome.url}"
    if outcome.outcome == Outcome.DUPLICATE:
        return f"⏭️ Skipped (already exists): {outcome.url}"
    return f"❌ Failed: {outcome.url} ({outcome.error})"


def summary_line(summary: BatchSummary) -> str:
    head = "Batch cancelled!" if summary.cancelled else "Batch complete!"
    return (
        f"{head} {summary.success} created, {summary.duplicates} skipped, "
        f"{summary.errors} errors ({summary.success_rate}% success)"
    )


class StatisticsStore:
    """Lifetime counters kept in a small JSON file between runs.

    Methods block on file I/O; `BatchService` calls them via `asyncio.to_thread`.
    """

    def __init__(self, path: str = STATISTICS_FILE):
        self.path = path

    def load(self) -> ExtensionStatistics:
        if not os.path.exists(self.path):
            return ExtensionStatistics()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return ExtensionStatistics.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning("⚠️ Statistics file unreadable, starting fresh: %s", e)
            return ExtensionStatistics()

    def save(self, stats: ExtensionStatistics) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(stats.model_dump(by_alias=True, mode="json"), f, indent=2)

    def update(self, summary: BatchSummary) -> ExtensionStatistics:
        stats = self.load()
        stats.total_processed += summary.processed
        stats.total_success += summary.success
        stats.total_errors += summary.errors
        stats.total_duplicates += summary.duplicates
        stats.last_processed = datetime.now(timezone.utc)
        self.save(stats)
        return stats

    def reset(self) -> ExtensionStatistics:
        stats = ExtensionStatistics()
        self.save(stats)
        return stats


Handler = Callable[[dict], Awaitable[dict]]


class BatchService:
    def __init__(self, orchestrator, api_client, statistics: Optional[StatisticsStore] = None,
                 min_batch_size: int = MIN_BATCH_SIZE):
        self.orchestrator = orchestrator
        self.api = api_client
        self.statistics = statistics or StatisticsStore()
        self.min_batch_size = min_batch_size
        self._subscribers: List[asyncio.Queue] = []
        self._handlers: Dict[str, Handler] = {
            "startBatchProcessing": self.start_batch,
            "stopBatchProcessing": self.stop_batch,
            "getProcessingStatus": self.get_status,
            "testApiConnection": self.test_api_connection,
            "getStatistics": self.get_statistics,
            "resetStatistics": self.reset_statistics,
        }
        orchestrator.add_progress_listener(self._broadcast)

    async def handle_message(self, message: dict) -> dict:
        action = (message or {}).get("action")
        handler = self._handlers.get(action)
        if handler is None:
            return {"success": False, "error": f"Unknown action: {action}"}
        try:
            return await handler((message or {}).get("data") or {})
        except Exception as e:
            logger.exception("❌ Message handler %s failed", action)
            return {"success": False, "error": str(e)}

    async def start_batch(self, data: dict) -> dict:
        urls, invalid = normalize_urls(data.get("urls") or [])
        if invalid:
            logger.warning("⚠️ Ignoring %d invalid URLs: %s", len(invalid), invalid)
        if len(urls) < self.min_batch_size:
            return {
                "success": False,
                "error": f"At least {self.min_batch_size} valid LinkedIn profile URLs are required (got {len(urls)})",
            }
        if self.orchestrator.is_running:
            return {"success": False, "error": "Batch processing already in progress"}

        try:
            result = await self.orchestrator.run_batch(urls)
        except BatchError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.exception("❌ Batch processing crashed")
            await self.orchestrator.reset()
            return {"success": False, "error": str(e)}

        await asyncio.to_thread(self.statistics.update, result.summary)
        logger.info(summary_line(result.summary))
        results = result.to_dict()
        return {
            "success": True,
            "data": {
                "results": results,
                "summary": results["summary"],
                "message": summary_line(result.summary),
                "invalid": invalid,
                "processingTime": result.summary.elapsed_ms,
            },
        }

    async def stop_batch(self, data: dict) -> dict:
        if not self.orchestrator.stop():
            return {"success": False, "error": "No batch is running"}
        return {"success": True, "data": {"message": "Stop requested"}}

    async def get_status(self, data: dict) -> dict:
        return {"success": True, "data": self.orchestrator.status()}

    async def test_api_connection(self, data: dict) -> dict:
        health = await self.api.check_health()
        return {"success": health.get("status") == "online", "data": health}

    async def get_statistics(self, data: dict) -> dict:
        stats = await asyncio.to_thread(self.statistics.load)
        return {"success": True, "data": stats.model_dump(by_alias=True, mode="json")}

    async def reset_statistics(self, data: dict) -> dict:
        stats = await asyncio.to_thread(self.statistics.reset)
        return {"success": True, "data": stats.model_dump(by_alias=True, mode="json")}

    def install_crash_handler(self, loop: asyncio.AbstractEventLoop) -> None:
        """Reset the orchestrator whenever a background task dies unhandled."""
        previous = loop.get_exception_handler()

        def handler(loop, context):
            logger.error("❌ Unhandled background error: %s", context.get("exception") or context.get("message"))
            loop.create_task(self.orchestrator.reset())
            if previous is not None:
                previous(loop, context)
            else:
                loop.default_exception_handler(context)

        loop.set_exception_handler(handler)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def _broadcast(self, event: ProgressEvent) -> None:
        message = {"action": "progressUpdate", "data": event.model_dump(by_alias=True)}
        for queue in list(self._subscribers):
            queue.put_nowait(message)
