"""
Fetch workers and the single result writer of the fundamentals pipeline
"""

import threading
from typing import List, Optional, Protocol

from src.utils.core.logger import get_logger
from src.value_screener.finnhub.data_models import FundamentalsRecord
from src.value_screener.finnhub.rate_limiter import RateLimiter
from src.value_screener.pipeline.channel import ClosableQueue
from src.value_screener.pipeline.stats import PipelineStats
from src.value_screener.storage import JsonArrayStore, RecordStoreError

logger = get_logger(__name__, utility="value_screener")


class FundamentalsSource(Protocol):
    def fetch(self, symbol: str) -> FundamentalsRecord:
        ...


class FetchWorker:
    """
    Pulls symbols from the work queue until it is closed and drained

    Each symbol costs one rate-limit permit. Fetch failures are logged and
    counted; they never stop the worker. Puts to the result queue block when
    the writer lags behind.
    """

    def __init__(
        self,
        worker_id: int,
        work_queue: ClosableQueue[str],
        result_queue: ClosableQueue[FundamentalsRecord],
        rate_limiter: RateLimiter,
        source: FundamentalsSource,
        cancel_event: threading.Event,
        stats: PipelineStats,
    ):
        self.worker_id = worker_id
        self.work_queue = work_queue
        self.result_queue = result_queue
        self.rate_limiter = rate_limiter
        self.source = source
        self.cancel_event = cancel_event
        self.stats = stats
        self.processed = 0
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        """Thread target; unexpected errors are kept on ``self.error`` for the orchestrator"""
        try:
            self._run()
        except BaseException as e:
            self.error = e
            logger.error(f"Worker {self.worker_id} stopped unexpectedly: {type(e).__name__}: {e}")

    def _run(self) -> None:
        for symbol in self.work_queue:
            if not self.rate_limiter.acquire(self.cancel_event):
                logger.info(f"Worker {self.worker_id}: cancelled, leaving {symbol} unprocessed")
                break

            self.processed += 1
            try:
                record = self.source.fetch(symbol)
            except Exception as e:
                logger.warning(f"Worker {self.worker_id}: failed to fetch {symbol}: {type(e).__name__}: {e}")
                self.stats.add_fetch_result(symbol, False, str(e))
                continue

            # A closed result queue here is a lifecycle bug and must surface
            self.result_queue.put(record)
            self.stats.add_fetch_result(symbol, True)

        logger.debug(f"Worker {self.worker_id} finished after {self.processed} symbols")


class ResultWriter:
    """
    Sole consumer of the result queue and sole writer of the output store

    ``incremental`` mode appends every record as it arrives (read, append,
    rewrite). ``buffered`` mode collects records and writes the complete
    array once the queue is drained. ``done`` is set when the writer exits.
    """

    def __init__(
        self,
        result_queue: ClosableQueue[FundamentalsRecord],
        store: JsonArrayStore,
        stats: PipelineStats,
        mode: str = "incremental",
        progress_every: int = 10,
    ):
        if mode not in ("incremental", "buffered"):
            raise ValueError(f"Unknown write mode: {mode}")
        self.result_queue = result_queue
        self.store = store
        self.stats = stats
        self.mode = mode
        self.progress_every = max(1, progress_every)
        self.done = threading.Event()
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            if self.mode == "incremental":
                self._run_incremental()
            else:
                self._run_buffered()
        except BaseException as e:
            self.error = e
            logger.error(f"Result writer stopped unexpectedly: {type(e).__name__}: {e}")
            # Keep draining so blocked workers can finish
            for record in self.result_queue:
                self.stats.add_write_result(record.symbol, False, "result writer stopped")
        finally:
            self.done.set()

    def _run_incremental(self) -> None:
        for record in self.result_queue:
            try:
                self.store.append(record)
            except (OSError, ValueError, TypeError, RecordStoreError) as e:
                logger.error(f"Error writing {record.symbol} to {self.store.path}: {e}")
                self.stats.add_write_result(record.symbol, False, str(e))
                continue

            written = self.stats.add_write_result(record.symbol, True)
            if written % self.progress_every == 0:
                logger.info(f"Progress: {written} records written to {self.store.path}")

    def _run_buffered(self) -> None:
        records: List[FundamentalsRecord] = list(self.result_queue)
        if not records:
            logger.info("No records to write")
            return

        try:
            existing = self.store.read()
            self.store.write(existing + [r.to_json_dict() for r in records])
        except (OSError, ValueError, TypeError, RecordStoreError) as e:
            logger.error(f"Error writing {len(records)} records to {self.store.path}: {e}")
            for record in records:
                self.stats.add_write_result(record.symbol, False, str(e))
            return

        for record in records:
            self.stats.add_write_result(record.symbol, True)
        logger.info(f"Wrote {len(records)} records to {self.store.path}")
