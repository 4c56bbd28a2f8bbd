"""
Value-stock filter over a fundamentals file
"""

import time
from dataclasses import dataclass
from typing import Iterable, List

from src.utils.core.logger import get_logger
from src.value_screener.finnhub.data_models import FundamentalsRecord
from src.value_screener.storage import JsonArrayStore

logger = get_logger(__name__, utility="value_screener")


@dataclass(frozen=True)
class ValueCriteria:
    """Thresholds of the value screen; bounds are exclusive"""

    max_pb_ratio: float = 1.5
    max_pe_ratio: float = 15.0
    max_debt_to_equity: float = 1.0
    min_roe: float = 15.0
    min_profit_margin: float = 20.0

    def matches(self, record: FundamentalsRecord) -> bool:
        return (
            0 < record.pb_ratio < self.max_pb_ratio
            and 0 < record.pe_ratio < self.max_pe_ratio
            and record.debt_to_equity < self.max_debt_to_equity
            and record.roe > self.min_roe
            and record.profit_margin > self.min_profit_margin
            and record.current_price > 0
        )


DEFAULT_CRITERIA = ValueCriteria()


def filter_value_stocks(
    records: Iterable[FundamentalsRecord], criteria: ValueCriteria = DEFAULT_CRITERIA
) -> List[FundamentalsRecord]:
    """Records passing ``criteria``, in input order"""
    return [r for r in records if criteria.matches(r)]


class ValueStockFilter:
    """Reads a fundamentals file and writes the records passing the value screen"""

    def __init__(self, criteria: ValueCriteria = DEFAULT_CRITERIA):
        self.criteria = criteria

    def run(self, source: JsonArrayStore, target: JsonArrayStore) -> List[FundamentalsRecord]:
        start = time.monotonic()

        records = source.read_models(FundamentalsRecord)
        passed = filter_value_stocks(records, self.criteria)
        logger.info(f"{len(passed)} out of {len(records)} passed filters")

        target.write(passed)
        logger.info(
            f"Wrote {len(passed)} symbols to {target.path} in {time.monotonic() - start:.2f}s"
        )
        return passed
