"""
Info Hub Aggregator Service
A uniform REST surface over weather, geocoding, quotes, exchange rates,
market indices and RSS news providers.
"""

__version__ = "1.0.0"
__author__ = "Info Hub Team"
__description__ = "Multi-provider data aggregation service with partial-failure fan-out"
