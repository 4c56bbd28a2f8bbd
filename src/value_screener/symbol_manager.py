"""
Symbol list refresh and loading for an exchange
"""

from typing import List

from pydantic import ValidationError

from src.utils.core.logger import get_logger
from src.value_screener.finnhub.client import FinnhubDataClient
from src.value_screener.finnhub.data_models import StockSymbol
from src.value_screener.storage import JsonArrayStore, RecordStoreError

logger = get_logger(__name__, utility="value_screener")


class SymbolFileError(Exception):
    """The symbol list file is missing, unreadable or malformed"""


class SymbolManager:
    """
    Maintains the ``symbols_<exchange>.json`` list the fetch pipeline reads
    """

    def __init__(self, store: JsonArrayStore):
        self.store = store

    def refresh(self, client: FinnhubDataClient, exchange: str) -> List[StockSymbol]:
        """
        Download the exchange's symbol list and replace the file with it

        Items without a display symbol are skipped.
        """
        raw_symbols = client.get_stock_symbols(exchange)

        symbols: List[StockSymbol] = []
        skipped = 0
        for item in raw_symbols:
            try:
                symbols.append(
                    StockSymbol(
                        description=item.get("description") or "",
                        display_symbol=item.get("displaySymbol") or "",
                        market_id_code=item.get("mic") or "",
                    )
                )
            except (ValidationError, AttributeError) as e:
                skipped += 1
                logger.debug(f"Skipping malformed symbol entry {item!r}: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped} malformed symbol entries for {exchange}")

        self.store.write(symbols)
        logger.info(f"Saved {len(symbols)} symbols for {exchange} to {self.store.path}")
        return symbols

    def load(self) -> List[StockSymbol]:
        """
        Read and validate the symbol list

        Raises:
            SymbolFileError: File missing, unreadable or not a list of symbols
        """
        if not self.store.exists():
            raise SymbolFileError(f"Symbol file not found: {self.store.path}")

        try:
            return self.store.read_models(StockSymbol)
        except (OSError, RecordStoreError, ValidationError) as e:
            raise SymbolFileError(f"Could not load symbols from {self.store.path}: {e}") from e

    def load_display_symbols(self) -> List[str]:
        return [s.display_symbol for s in self.load()]
