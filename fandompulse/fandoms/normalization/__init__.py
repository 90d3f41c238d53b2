"""
Platform normalizers.

Pure functions from raw provider items to canonical records. No database
access, no network.
"""

from fandompulse.fandoms.normalization.content import normalize_content
from fandompulse.fandoms.normalization.influencers import normalize_influencers
from fandompulse.fandoms.normalization.metrics import normalize_metrics
from fandompulse.fandoms.normalization.types import (
    NormalizedContent,
    NormalizedInfluencer,
    NormalizedMetrics,
)

__all__ = [
    "NormalizedContent",
    "NormalizedInfluencer",
    "NormalizedMetrics",
    "normalize_content",
    "normalize_influencers",
    "normalize_metrics",
]
