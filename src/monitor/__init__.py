"""
Divergence monitoring.

Tracks the latest V2 and V3 ratios, compares them and supervises the two
pool event streams. The stream coordinator and console renderer live in
src.monitor.coordinator and src.monitor.console.
"""

from .errors import (
    DecodeError,
    ErrorHandler,
    MonitorError,
    NetworkError,
    RateLimitError,
    ReconnectPolicy,
    SubscriptionFailure,
)
from .records import DivergenceRecord
from .tracker import BASE_SOURCE, COMPARE_SOURCE, DivergenceTracker

__all__ = [
    'BASE_SOURCE',
    'COMPARE_SOURCE',
    'DecodeError',
    'DivergenceRecord',
    'DivergenceTracker',
    'ErrorHandler',
    'MonitorError',
    'NetworkError',
    'RateLimitError',
    'ReconnectPolicy',
    'SubscriptionFailure',
]
