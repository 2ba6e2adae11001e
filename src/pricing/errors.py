"""
Exceptions raised by the pricing math.
"""


class PricingError(Exception):
    """Base exception for pricing operations."""
    pass


class DivisionByZero(PricingError):
    """Raised when a decimal division has a zero denominator."""
    pass


class NoRatio(PricingError):
    """Raised when a pool state or trade cannot produce a meaningful ratio."""
    pass
