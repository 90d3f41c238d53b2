"""
Apify integration for the managed-actor provider.

Provides:
- ApifyClient: HTTP client for Apify API v2
"""

from fandompulse.integrations.apify.client import (
    ApifyClient,
    ApifyError,
    ApifyTimeoutError,
    RunInfo,
)

__all__ = [
    "ApifyClient",
    "ApifyError",
    "ApifyTimeoutError",
    "RunInfo",
]
