#!/usr/bin/env python3
"""
value-screener command line runner

Usage:
    python -m src.value_screener.main refresh US
    python -m src.value_screener.main fundamentals US [--workers N]
    python -m src.value_screener.main process-ratio US
    python -m src.value_screener.main filter US

Exit codes: 0 success, 1 fatal error, 2 malformed invocation, 130 cancelled.
"""

import argparse
import signal
import sys
import threading
from typing import List, Optional

from pydantic import ValidationError

from src.utils.core.credentials import CredentialValidationError
from src.utils.core.logger import enable_file_logging, get_logger, shutdown_logging
from src.value_screener.config import ScreenerConfig, config as default_config
from src.value_screener.finnhub.client import FinnhubAPIError, FinnhubDataClient
from src.value_screener.finnhub.fundamentals_fetcher import FundamentalsFetcher
from src.value_screener.pipeline.fundamentals_pipeline import FundamentalsPipeline, PipelineError
from src.value_screener.pipeline.ratio_processor import RatioProcessor
from src.value_screener.storage import JsonArrayStore, RecordStoreError
from src.value_screener.symbol_manager import SymbolFileError, SymbolManager
from src.value_screener.value_filter import ValueStockFilter

logger = get_logger(__name__, utility="value_screener")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130

MODES = ("refresh", "fundamentals", "process-ratio", "filter")


class ScreenerRunner:
    """Runs one mode of the screener for one exchange"""

    def __init__(
        self,
        settings: Optional[ScreenerConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.settings = settings or default_config
        self.cancel_event = cancel_event or threading.Event()

    def _client(self) -> FinnhubDataClient:
        return FinnhubDataClient(settings=self.settings)

    def refresh_symbols(self, exchange: str) -> int:
        store = JsonArrayStore(self.settings.symbols_file(exchange))
        with self._client() as client:
            symbols = SymbolManager(store).refresh(client, exchange)
        return len(symbols)

    def fetch_fundamentals(self, exchange: str, workers: Optional[int] = None) -> int:
        # Credentials and the symbol file are checked before any thread starts
        with self._client() as client:
            symbols = SymbolManager(JsonArrayStore(self.settings.symbols_file(exchange))).load_display_symbols()
            logger.info(f"Found {len(symbols)} symbols. Fetching fundamental data...")

            pipeline = FundamentalsPipeline.from_config(
                self.settings,
                source=FundamentalsFetcher(client),
                store=JsonArrayStore(self.settings.fundamentals_file(exchange)),
                workers=workers,
                cancel_event=self.cancel_event,
            )
            stats = pipeline.run(symbols)

        if self.settings.SAVE_STATS:
            stats.save(self.settings.stats_dir)

        logger.info(f"Completed! Successfully processed {stats.symbols_fetched} of {len(symbols)} symbols.")
        return EXIT_CANCELLED if stats.cancelled else EXIT_OK

    def process_ratio(self, exchange: str) -> int:
        store = JsonArrayStore(self.settings.fundamentals_file(exchange))
        if not store.exists():
            raise RecordStoreError("Fundamentals file not found", store.path)
        RatioProcessor(max_workers=self.settings.RATIO_WORKERS).process(store)
        return EXIT_OK

    def filter_value_stocks(self, exchange: str) -> int:
        source = JsonArrayStore(self.settings.fundamentals_file(exchange))
        if not source.exists():
            raise RecordStoreError("Fundamentals file not found", source.path)
        ValueStockFilter().run(source, JsonArrayStore(self.settings.value_stocks_file(exchange)))
        return EXIT_OK

    def run(self, mode: str, exchange: str, workers: Optional[int] = None) -> int:
        """Dispatch ``mode``; returns the process exit code"""
        try:
            if mode == "refresh":
                self.refresh_symbols(exchange)
                return EXIT_OK
            if mode == "fundamentals":
                return self.fetch_fundamentals(exchange, workers)
            if mode == "process-ratio":
                return self.process_ratio(exchange)
            if mode == "filter":
                return self.filter_value_stocks(exchange)
        except CredentialValidationError as e:
            logger.error(f"Cannot start {mode}: {e.message}")
            return EXIT_FATAL
        except (SymbolFileError, RecordStoreError, ValidationError, OSError) as e:
            logger.error(f"{mode} failed: {e}")
            return EXIT_FATAL
        except FinnhubAPIError as e:
            logger.error(f"{mode} failed: Finnhub error ({e.error_category}): {e.message}")
            return EXIT_FATAL
        except PipelineError as e:
            logger.error(f"{mode} failed: {e}")
            return EXIT_FATAL

        logger.error(f"Unknown mode: {mode}")
        return EXIT_USAGE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="value-screener",
        description="Fetch Finnhub fundamentals and screen for value stocks",
    )
    parser.add_argument("mode", choices=MODES, help="Operation to run")
    parser.add_argument("exchange", help="Exchange code, e.g. US")
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Fetch workers for the fundamentals mode (1 runs sequentially)",
    )
    return parser


def _install_sigterm_handler(cancel_event: threading.Event) -> None:
    def _handle(signum, frame):
        logger.warning(f"Received signal {signum}; cancelling")
        cancel_event.set()

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _handle)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.workers is not None and args.workers < 1:
        logger.error("--workers must be at least 1")
        return EXIT_USAGE

    enable_file_logging("value_screener")

    cancel_event = threading.Event()
    _install_sigterm_handler(cancel_event)

    try:
        return ScreenerRunner(cancel_event=cancel_event).run(args.mode, args.exchange, args.workers)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_CANCELLED
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
