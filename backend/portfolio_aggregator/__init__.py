# backend/portfolio_aggregator/__init__.py
"""Portfolio Aggregator: multi-platform holdings and valuation API."""

__version__ = "0.1.0"
