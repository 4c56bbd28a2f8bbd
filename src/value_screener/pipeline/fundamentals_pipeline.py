"""
Concurrent fundamentals fetch pipeline

symbols -> work queue -> N fetch workers (shared rate limiter) -> result queue
-> one result writer -> JSON store
"""

import threading
from typing import List, Optional, Sequence

from src.utils.core.logger import get_logger
from src.value_screener.config import ScreenerConfig
from src.value_screener.finnhub.data_models import FundamentalsRecord
from src.value_screener.finnhub.rate_limiter import RateLimiter, get_rate_limiter
from src.value_screener.pipeline.channel import ClosableQueue
from src.value_screener.pipeline.stats import PipelineStats
from src.value_screener.pipeline.workers import FetchWorker, FundamentalsSource, ResultWriter
from src.value_screener.storage import JsonArrayStore

logger = get_logger(__name__, utility="value_screener")


class PipelineError(Exception):
    """A worker or the writer died from an error that is not a per-symbol failure"""


class FundamentalsPipeline:
    """
    Fans symbols out to a fixed pool of fetch workers and funnels the
    results to a single writer

    Shutdown order: close the work queue after every symbol is enqueued,
    join all workers, then close the result queue and wait for the writer.
    The result queue is never closed while a worker can still put to it.
    A worker count of 1 gives the sequential fetch path.
    """

    ENQUEUE_POLL_SECONDS = 0.5

    def __init__(
        self,
        source: FundamentalsSource,
        rate_limiter: RateLimiter,
        store: JsonArrayStore,
        workers: int = 3,
        queue_capacity: int = 100,
        write_mode: str = "incremental",
        append_to_existing: bool = False,
        progress_every: int = 10,
        cancel_event: Optional[threading.Event] = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.source = source
        self.rate_limiter = rate_limiter
        self.store = store
        self.workers = workers
        self.queue_capacity = queue_capacity
        self.write_mode = write_mode
        self.append_to_existing = append_to_existing
        self.progress_every = progress_every
        self.cancel_event = cancel_event or threading.Event()

    @classmethod
    def from_config(
        cls,
        settings: ScreenerConfig,
        source: FundamentalsSource,
        store: JsonArrayStore,
        workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        write_mode: Optional[str] = None,
    ) -> "FundamentalsPipeline":
        """
        Build a pipeline from settings

        A single worker is the sequential path and writes the array once
        (buffered) unless ``write_mode`` says otherwise.
        """
        workers = workers or settings.FETCH_WORKERS
        if write_mode is None:
            write_mode = "buffered" if workers == 1 else settings.WRITE_MODE
        return cls(
            source=source,
            rate_limiter=get_rate_limiter(
                settings.MIN_REQUEST_INTERVAL, disabled=settings.DISABLE_RATE_LIMITING
            ),
            store=store,
            workers=workers,
            queue_capacity=settings.QUEUE_CAPACITY,
            write_mode=write_mode,
            append_to_existing=settings.APPEND_TO_EXISTING,
            progress_every=settings.PROGRESS_EVERY,
            cancel_event=cancel_event,
        )

    def cancel(self) -> None:
        """Stop admitting new requests; queued results are still written"""
        self.cancel_event.set()

    def run(self, symbols: Sequence[str]) -> PipelineStats:
        """
        Fetch every symbol and write the results

        Args:
            symbols: Symbols to fetch, each enqueued exactly once

        Returns:
            Run statistics

        Raises:
            PipelineError: A worker or the writer stopped on an unexpected error
        """
        stats = PipelineStats(symbols_found=len(symbols))
        logger.info(
            f"Fetching fundamentals for {len(symbols)} symbols with {self.workers} workers "
            f"({self.write_mode} writes to {self.store.path})"
        )

        if not self.append_to_existing:
            self.store.reset()

        work_queue: ClosableQueue[str] = ClosableQueue(self.queue_capacity)
        result_queue: ClosableQueue[FundamentalsRecord] = ClosableQueue(self.queue_capacity)

        writer = ResultWriter(
            result_queue, self.store, stats, mode=self.write_mode, progress_every=self.progress_every
        )
        writer_thread = threading.Thread(target=writer.run, name="result-writer", daemon=True)

        fetch_workers = [
            FetchWorker(
                worker_id=i,
                work_queue=work_queue,
                result_queue=result_queue,
                rate_limiter=self.rate_limiter,
                source=self.source,
                cancel_event=self.cancel_event,
                stats=stats,
            )
            for i in range(self.workers)
        ]
        worker_threads = [
            threading.Thread(target=w.run, name=f"fetch-worker-{w.worker_id}", daemon=True)
            for w in fetch_workers
        ]

        writer_thread.start()
        for t in worker_threads:
            t.start()

        try:
            self._enqueue(work_queue, symbols, worker_threads)
        except KeyboardInterrupt:
            logger.warning("Interrupted; cancelling outstanding work")
            self.cancel_event.set()
        finally:
            work_queue.close()

        self._join(worker_threads)

        # All producers have exited; nothing can put to the result queue anymore
        result_queue.close()
        self._wait_for_writer(writer)
        writer_thread.join()

        stats.cancelled = self.cancel_event.is_set()
        stats.finish()
        stats.log_summary()

        failures: List[BaseException] = [w.error for w in fetch_workers if w.error is not None]
        if writer.error is not None:
            failures.append(writer.error)
        if failures:
            raise PipelineError(
                f"{len(failures)} pipeline thread(s) failed; first: {failures[0]!r}"
            ) from failures[0]

        return stats

    def _enqueue(
        self, work_queue: ClosableQueue[str], symbols: Sequence[str], threads: List[threading.Thread]
    ) -> int:
        """Put every symbol on the work queue; stops early on cancellation"""
        for count, symbol in enumerate(symbols):
            while True:
                if self.cancel_event.is_set() or not any(t.is_alive() for t in threads):
                    logger.warning(f"Stopped enqueueing after {count} of {len(symbols)} symbols")
                    return count
                if work_queue.put(symbol, timeout=self.ENQUEUE_POLL_SECONDS):
                    break
        return len(symbols)

    def _wait_for_writer(self, writer: ResultWriter) -> None:
        """Block until the writer has drained the result queue, surviving Ctrl+C"""
        while not writer.done.is_set():
            try:
                writer.done.wait(timeout=self.ENQUEUE_POLL_SECONDS)
            except KeyboardInterrupt:
                logger.warning("Interrupted; waiting for queued records to be written")
                self.cancel_event.set()

    def _join(self, threads: List[threading.Thread]) -> None:
        for t in threads:
            while t.is_alive():
                try:
                    t.join(timeout=self.ENQUEUE_POLL_SECONDS)
                except KeyboardInterrupt:
                    logger.warning("Interrupted; waiting for in-flight fetches to finish")
                    self.cancel_event.set()
