"""
TradePulse utils: cache and request throttle.

Classes:
    TTLCache, CacheConfig   In-memory TTL cache with stale reads; see cache.py
    RequestThrottle         Minimum-interval throttle; see throttle.py
"""

from .cache import TTLCache, CacheConfig
from .throttle import RequestThrottle, get_default_throttle, set_default_throttle

__all__ = [
    "TTLCache",
    "CacheConfig",
    "RequestThrottle",
    "get_default_throttle",
    "set_default_throttle",
]
