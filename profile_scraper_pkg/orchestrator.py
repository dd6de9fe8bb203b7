import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Type

from .config import MAX_RETRIES, PROCESSING_DELAY_MS, RETRY_BACKOFF_MS, TAB_TIMEOUT_MS
from .errors import AlreadyRunning, BatchRejected, RetriesExhausted, TabControllerError
from .models import BatchResult, BatchSummary, Outcome, ProgressEvent, UrlOutcome


logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], Any]


@dataclass
class RetryPolicy:
    """Bounded retry with a fixed backoff between attempts."""

    max_attempts: int = MAX_RETRIES
    backoff_ms: int = RETRY_BACKOFF_MS
    retry_on: Tuple[Type[BaseException], ...] = (TabControllerError,)

    async def run(self, operation: Callable[..., Awaitable[Any]], *args, **kwargs) -> Tuple[Any, int]:
        """Return (result, attempts used) or raise `RetriesExhausted`."""
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation(*args, **kwargs), attempt
            except self.retry_on as e:
                last_error = e
                logger.warning("⚠️ Attempt %d/%d failed: %s", attempt, self.max_attempts, e)
                if attempt < self.max_attempts and self.backoff_ms > 0:
                    await asyncio.sleep(self.backoff_ms / 1000)
        raise RetriesExhausted(self.max_attempts, last_error)


@dataclass
class BatchJob:
    urls: List[str]
    processed: int = 0
    success: int = 0
    errors: int = 0
    duplicates: int = 0
    current_url: Optional[str] = None
    cancelled: bool = False
    outcomes: List[UrlOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started: float = field(default_factory=time.monotonic)
    cancel_requested: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def total(self) -> int:
        return len(self.urls)

    def record(self, outcome: UrlOutcome) -> None:
        self.outcomes.append(outcome)
        self.processed += 1
        if outcome.outcome == Outcome.CREATED:
            self.success += 1
        elif outcome.outcome == Outcome.DUPLICATE:
            self.duplicates += 1
        else:
            self.errors += 1

    def progress_event(self) -> ProgressEvent:
        return ProgressEvent(
            processed=self.processed,
            total=self.total,
            current_url=self.current_url or "",
            progress=round(self.processed / self.total * 100) if self.total else 0,
        )

    def result(self) -> BatchResult:
        summary = BatchSummary(
            total=self.total,
            processed=self.processed,
            success=self.success,
            errors=self.errors,
            duplicates=self.duplicates,
            cancelled=self.cancelled,
            started_at=self.started_at,
            elapsed_ms=int((time.monotonic() - self.started) * 1000),
        )
        return BatchResult(summary=summary, outcomes=list(self.outcomes))


class BatchOrchestrator:
    """Sequences profile URLs through one tab at a time.

    Each URL goes through the tab controller (with retries) and then to the
    profile API. Failures are recorded per URL and never end the batch; only
    `stop()` or running out of URLs does.
    """

    def __init__(
        self,
        tabs,
        api_client,
        retry_policy: Optional[RetryPolicy] = None,
        delay_ms: int = PROCESSING_DELAY_MS,
        tab_timeout_ms: int = TAB_TIMEOUT_MS,
    ):
        self.tabs = tabs
        self.api = api_client
        self.retry = retry_policy or RetryPolicy()
        self.delay_ms = delay_ms
        self.tab_timeout_ms = tab_timeout_ms
        self._job: Optional[BatchJob] = None
        # Job whose loop is still executing; outlives `_job` after a forced reset.
        self._active: Optional[BatchJob] = None
        self._listeners: List[ProgressListener] = []

    @property
    def is_running(self) -> bool:
        return self._job is not None

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def run_batch(self, urls: List[str]) -> BatchResult:
        if self._job is not None or self._active is not None:
            raise AlreadyRunning()
        if not urls:
            raise BatchRejected("No URLs provided")

        job = BatchJob(urls=list(urls))
        self._job = job
        self._active = job
        logger.info("🚀 Starting batch of %d profiles", job.total)
        try:
            for index, url in enumerate(job.urls):
                if job.cancel_requested.is_set():
                    break
                job.current_url = url
                job.record(await self._process_url(url))
                await self._emit_progress(job.progress_event())
                if index < job.total - 1:
                    await self._wait_between(job)
            job.cancelled = job.cancel_requested.is_set() and job.processed < job.total
            result = job.result()
            logger.info(
                "✅ Batch %s: %d created, %d skipped, %d errors",
                "cancelled" if job.cancelled else "complete",
                job.success,
                job.duplicates,
                job.errors,
            )
            return result
        finally:
            if self._active is job:
                self._active = None
            if self._job is job:
                await self.reset()

    async def _process_url(self, url: str) -> UrlOutcome:
        attempts = 0
        try:
            try:
                record, attempts = await self.retry.run(self.tabs.open_and_extract, url, self.tab_timeout_ms)
            except RetriesExhausted as e:
                logger.error("❌ %s: %s", url, e)
                return UrlOutcome(url=url, outcome=Outcome.ERROR, error=str(e), attempts=e.attempts)

            created = await self.api.create_profile(record)
            if created.outcome == Outcome.CREATED:
                logger.info("✅ Saved %s (id=%s)", record.name, created.profile_id)
            elif created.outcome == Outcome.DUPLICATE:
                logger.info("⏭️ Already stored: %s", url)
            else:
                logger.error("❌ Save failed for %s: %s", url, created.message)
            return UrlOutcome(
                url=url,
                outcome=created.outcome,
                profile_id=created.profile_id,
                name=record.name,
                error=created.message if created.outcome == Outcome.ERROR else None,
                attempts=attempts,
            )
        except Exception as e:
            logger.exception("❌ Unexpected error processing %s", url)
            return UrlOutcome(url=url, outcome=Outcome.ERROR, error=str(e), attempts=max(attempts, 1))

    async def _emit_progress(self, event: ProgressEvent) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("⚠️ Progress listener failed: %s", e)

    async def _wait_between(self, job: BatchJob) -> None:
        if self.delay_ms <= 0:
            return
        try:
            await asyncio.wait_for(job.cancel_requested.wait(), timeout=self.delay_ms / 1000)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> bool:
        """Request cancellation; the current tab finishes before the batch ends."""
        if self._job is None:
            return False
        logger.info("🛑 Stop requested")
        self._job.cancel_requested.set()
        return True

    def status(self) -> dict:
        job = self._job
        return {
            "isProcessing": job is not None,
            "processedCount": job.processed if job else 0,
            "successCount": job.success if job else 0,
            "errorCount": job.errors if job else 0,
            "duplicateCount": job.duplicates if job else 0,
            "totalUrls": job.total if job else 0,
            "activeTabs": len(self.tabs.open_tabs),
            "currentUrl": job.current_url if job else None,
            "startTime": job.started_at.isoformat() if job else None,
        }

    async def reset(self) -> None:
        """Force-close tracked tabs and drop the current job.

        A loop still running the dropped job sees its cancel flag and stops at
        the next URL boundary; no new batch starts until it has returned.
        """
        if self._job is not None:
            self._job.cancel_requested.set()
        try:
            await self.tabs.close_all()
        finally:
            self._job = None
