"""
Fundamentals fetch pipeline and batch post-processing passes
"""

from .channel import ClosableQueue, QueueClosedError
from .fundamentals_pipeline import FundamentalsPipeline, PipelineError
from .ratio_processor import RatioProcessor, price_to_book
from .stats import PipelineStats
from .workers import FetchWorker, ResultWriter

__all__ = [
    "ClosableQueue",
    "QueueClosedError",
    "FundamentalsPipeline",
    "PipelineError",
    "PipelineStats",
    "FetchWorker",
    "ResultWriter",
    "RatioProcessor",
    "price_to_book",
]
