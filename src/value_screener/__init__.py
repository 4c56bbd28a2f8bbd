"""
value-screener

Concurrent Finnhub fundamentals collection and value-stock screening.
"""

__version__ = "1.0.0"
