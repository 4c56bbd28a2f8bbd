"""
Statistics tracking for pipeline execution
"""

import json
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.utils.core.logger import get_logger
from src.value_screener.finnhub.data_models import METRIC_FIELD_MAP_VERSION

logger = get_logger(__name__, utility="value_screener")


class PipelineStats:
    """Thread-safe counters shared by the workers and the result writer"""

    def __init__(self, symbols_found: int = 0):
        self.start_time = datetime.now()
        self.end_time: Optional[datetime] = None
        self.symbols_found = symbols_found
        self.symbols_processed = 0
        self.symbols_fetched = 0
        self.symbols_failed = 0
        self.records_written = 0
        self.write_failures = 0
        self.cancelled = False
        self.errors: List[str] = []
        self._lock = threading.Lock()

    def add_fetch_result(self, symbol: str, success: bool, error: Optional[str] = None) -> None:
        """Add result for a fetched symbol"""
        with self._lock:
            self.symbols_processed += 1
            if success:
                self.symbols_fetched += 1
            else:
                self.symbols_failed += 1
                if error:
                    self.errors.append(f"{symbol}: {error}")

    def add_write_result(self, symbol: str, success: bool, error: Optional[str] = None) -> int:
        """Add result for a written record; returns the number written so far"""
        with self._lock:
            if success:
                self.records_written += 1
            else:
                self.write_failures += 1
                if error:
                    self.errors.append(f"{symbol} (write): {error}")
            return self.records_written

    def finish(self) -> None:
        """Mark pipeline as finished"""
        self.end_time = datetime.now()

    @property
    def duration(self) -> timedelta:
        end = self.end_time or datetime.now()
        return end - self.start_time

    @property
    def success_rate(self) -> float:
        if self.symbols_processed == 0:
            return 0.0
        return (self.symbols_fetched / self.symbols_processed) * 100

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "start_time": self.start_time.isoformat(),
                "end_time": self.end_time.isoformat() if self.end_time else None,
                "duration_seconds": self.duration.total_seconds(),
                "symbols_found": self.symbols_found,
                "symbols_processed": self.symbols_processed,
                "symbols_fetched": self.symbols_fetched,
                "symbols_failed": self.symbols_failed,
                "records_written": self.records_written,
                "write_failures": self.write_failures,
                "success_rate": self.success_rate,
                "cancelled": self.cancelled,
                "error_count": len(self.errors),
                "errors": self.errors[:10],  # Limit to first 10 errors
                "metric_field_map_version": METRIC_FIELD_MAP_VERSION,
            }

    def log_summary(self) -> None:
        logger.info(
            f"Found {self.symbols_found} symbols, processed {self.symbols_processed}: "
            f"{self.symbols_fetched} fetched, {self.symbols_failed} failed "
            f"({self.success_rate:.1f}%)"
        )
        logger.info(
            f"Wrote {self.records_written} records ({self.write_failures} write failures) "
            f"in {self.duration.total_seconds():.1f}s"
        )

    def save(self, stats_dir: Path) -> Optional[Path]:
        """Save statistics as JSON; failures are logged, not raised"""
        try:
            stats_dir.mkdir(parents=True, exist_ok=True)
            timestamp = self.start_time.strftime("%Y%m%d_%H%M%S")
            stats_file = stats_dir / f"pipeline_stats_{timestamp}.json"
            with open(stats_file, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save pipeline statistics: {e}")
            return None

        logger.info(f"Pipeline statistics saved to {stats_file}")
        return stats_file
