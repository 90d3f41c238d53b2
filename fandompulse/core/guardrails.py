"""
Spend guardrails for external providers.

This module provides:
1. Flag readers for provider kill switches
2. Guard functions that fail fast when a disabled provider is called

The managed-actor provider bills per run, so live calls are opt-in via
APIFY_ENABLED. The guard raises instead of silently returning so the adapter
boundary reports the refusal as a provider failure (and failover proceeds).
"""

from __future__ import annotations

import logging

from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ApifyDisabledError(Exception):
    """Raised when an Apify API call is attempted but APIFY_ENABLED=false."""

    def __init__(self, message: str = "Apify is disabled (APIFY_ENABLED=false)"):
        super().__init__(message)


class ProviderConfigError(Exception):
    """Raised when a provider is called without its required configuration."""

    pass


# =============================================================================
# FLAG READERS
# =============================================================================


def is_apify_enabled() -> bool:
    """
    Check if Apify API calls are enabled.

    Default is False (safe). Must be explicitly enabled for live calls.
    """
    return getattr(settings, "APIFY_ENABLED", False)


def get_monitor_api_key() -> str:
    """
    Return the monitor proxy key used by the SociaVault provider.

    Raises:
        ProviderConfigError: If MONITOR_API_KEY is not configured
    """
    key = getattr(settings, "MONITOR_API_KEY", "")
    if not key:
        raise ProviderConfigError("MONITOR_API_KEY environment variable is required")
    return key


# =============================================================================
# GUARD FUNCTIONS
# =============================================================================


def require_apify_enabled() -> None:
    """
    Guard: Raise if Apify is not enabled.

    Call this at the start of any function that makes Apify API calls.

    Raises:
        ApifyDisabledError: If APIFY_ENABLED is not true
    """
    if not is_apify_enabled():
        raise ApifyDisabledError(
            "Apify API calls are disabled. Set APIFY_ENABLED=true to enable."
        )
