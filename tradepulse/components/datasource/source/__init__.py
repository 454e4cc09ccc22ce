"""
Data source implementations.

Classes:
    YahooChartSource   Yahoo Finance v8 chart endpoint; see yahoo_chart.py
"""

from .yahoo_chart import YahooChartSource

__all__ = ["YahooChartSource"]
