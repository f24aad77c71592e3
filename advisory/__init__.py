"""
Advisory oracle package.

This package provides the client that asks the hosted model for a
BUY / SELL / HOLD recommendation, and the response model it returns.
"""

from .client import AdvisoryClient
from .models import AdvisoryResponse, TechnicalDetails
from .rate_limiter import RateLimiter

__all__ = [
    "AdvisoryClient",
    "AdvisoryResponse",
    "RateLimiter",
    "TechnicalDetails",
]
