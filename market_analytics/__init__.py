"""
Market Analytics Core

Quote/bar ingestion with an in-memory cache, technical indicators, chart
patterns, support/resistance levels and options analytics.
"""

__version__ = "0.1.0"
