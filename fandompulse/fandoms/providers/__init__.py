"""
Scrape providers and failover.

Providers:
- sociavault: direct proxied API (SociavaultProvider)
- apify: managed actors (ApifyProvider)
"""

from fandompulse.fandoms.providers.base import ProviderResult, ScrapeParams, ScrapeProvider
from fandompulse.fandoms.providers.failover import FailoverResult, scrape_with_failover

__all__ = [
    "FailoverResult",
    "ProviderResult",
    "ScrapeParams",
    "ScrapeProvider",
    "scrape_with_failover",
]
