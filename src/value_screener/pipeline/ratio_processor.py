"""
Derived-metric pass: recomputes the price-to-book ratio for a fundamentals file
"""

import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from src.utils.core.logger import get_logger
from src.value_screener.finnhub.data_models import FundamentalsRecord
from src.value_screener.storage import JsonArrayStore

logger = get_logger(__name__, utility="value_screener")


def price_to_book(current_price: float, book_value_per_share: float) -> float:
    """CurrentPrice / BookValuePerShare, defined as 0 when book value per share is 0 or the ratio is not finite"""
    if book_value_per_share == 0:
        return 0.0
    ratio = current_price / book_value_per_share
    return ratio if math.isfinite(ratio) else 0.0


def with_price_to_book(record: FundamentalsRecord) -> FundamentalsRecord:
    return record.model_copy(
        update={"pb_ratio": price_to_book(record.current_price, record.book_value_per_share)}
    )


@dataclass
class RatioResult:
    processed: int
    elapsed_seconds: float


class RatioProcessor:
    """
    Rewrites PBRatio for every record of a fundamentals file

    Work is partitioned by index: each task reads ``records[i]`` and writes
    ``results[i]`` of a list sized up front, so tasks never share a slot.
    """

    def __init__(self, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers

    def compute(self, records: List[FundamentalsRecord]) -> List[FundamentalsRecord]:
        results: List[Optional[FundamentalsRecord]] = [None] * len(records)

        def _process_index(idx: int) -> None:
            results[idx] = with_price_to_book(records[idx])

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # list() re-raises the first task exception, if any
            list(executor.map(_process_index, range(len(records))))

        return results  # type: ignore[return-value]

    def process(self, store: JsonArrayStore) -> RatioResult:
        """
        Recompute the ratio for every record in ``store`` and write the file back once

        Raises:
            RecordStoreError / OSError: The fundamentals file cannot be read
            pydantic.ValidationError: A stored record is malformed
        """
        start = time.monotonic()

        records = store.read_models(FundamentalsRecord)
        results = self.compute(records)
        store.write(results)

        elapsed = time.monotonic() - start
        logger.info(f"Successfully processed and wrote {len(results)} records in {elapsed:.2f}s")
        return RatioResult(processed=len(results), elapsed_seconds=elapsed)
