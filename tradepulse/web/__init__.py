"""
TradePulse web: JSON API over the trading workflow (Flask Blueprint in routes.py, shared state in app.py).
"""
