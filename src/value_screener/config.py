"""
Configuration settings for Finnhub fundamentals collection and screening
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


WRITE_MODES = ("incremental", "buffered")


@dataclass
class ScreenerConfig:
    """Configuration class for the Finnhub client and the fetch pipeline"""

    # API Configuration
    API_KEY: Optional[str] = None
    BASE_URL: str = "https://finnhub.io/api/v1"
    REQUEST_TIMEOUT: int = 30

    # Rate Limiting: provider-mandated minimum seconds between calls, shared by all workers
    MIN_REQUEST_INTERVAL: float = 3.0
    DISABLE_RATE_LIMITING: bool = False

    # Pipeline
    FETCH_WORKERS: int = 3
    QUEUE_CAPACITY: int = 100
    RATIO_WORKERS: int = 4
    WRITE_MODE: str = "incremental"
    APPEND_TO_EXISTING: bool = False
    PROGRESS_EVERY: int = 10
    SAVE_STATS: bool = True

    # Storage
    DATA_DIR: str = "."

    def __post_init__(self):
        if self.WRITE_MODE not in WRITE_MODES:
            raise ValueError(f"WRITE_MODE must be one of {WRITE_MODES}, got {self.WRITE_MODE!r}")
        if self.FETCH_WORKERS < 1:
            raise ValueError("FETCH_WORKERS must be at least 1")
        if self.QUEUE_CAPACITY < 1:
            raise ValueError("QUEUE_CAPACITY must be at least 1")
        if self.MIN_REQUEST_INTERVAL < 0:
            raise ValueError("MIN_REQUEST_INTERVAL cannot be negative")

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR)

    def symbols_file(self, exchange: str) -> Path:
        return self.data_path / f"symbols_{exchange}.json"

    def fundamentals_file(self, exchange: str) -> Path:
        return self.data_path / f"fundamentals_{exchange}.json"

    def value_stocks_file(self, exchange: str) -> Path:
        return self.data_path / f"value_stocks_{exchange}.json"

    @property
    def stats_dir(self) -> Path:
        return self.data_path / "pipeline_stats"

    @classmethod
    def from_env(cls) -> 'ScreenerConfig':
        """Create configuration from environment variables"""
        return cls(
            API_KEY=os.getenv("FINNHUB_API_KEY"),
            BASE_URL=os.getenv("FINNHUB_BASE_URL", cls.BASE_URL),
            REQUEST_TIMEOUT=int(os.getenv("REQUEST_TIMEOUT", str(cls.REQUEST_TIMEOUT))),
            MIN_REQUEST_INTERVAL=float(
                os.getenv("FINNHUB_MIN_INTERVAL_SECONDS", str(cls.MIN_REQUEST_INTERVAL))
            ),
            DISABLE_RATE_LIMITING=_env_flag("DISABLE_RATE_LIMITING", "0"),
            FETCH_WORKERS=int(os.getenv("FUNDAMENTALS_WORKERS", str(cls.FETCH_WORKERS))),
            QUEUE_CAPACITY=int(os.getenv("QUEUE_CAPACITY", str(cls.QUEUE_CAPACITY))),
            RATIO_WORKERS=int(os.getenv("RATIO_WORKERS", str(cls.RATIO_WORKERS))),
            WRITE_MODE=os.getenv("WRITE_MODE", cls.WRITE_MODE).strip().lower(),
            APPEND_TO_EXISTING=_env_flag("APPEND_TO_EXISTING", "0"),
            PROGRESS_EVERY=int(os.getenv("PROGRESS_EVERY", str(cls.PROGRESS_EVERY))),
            SAVE_STATS=_env_flag("SAVE_PIPELINE_STATS", "1"),
            DATA_DIR=os.getenv("DATA_DIR", cls.DATA_DIR),
        )


# Global configuration instance
config = ScreenerConfig.from_env()
