"""
Pytest configuration for Fandom Pulse tests.

Runs against fandompulse.settings_test (in-memory sqlite, zero trends delays).
"""

import os

import django
import pytest


def pytest_configure():
    """Configure Django settings before tests run."""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fandompulse.settings_test")
    django.setup()


@pytest.fixture
def client():
    """Django test client fixture."""
    from django.test import Client
    return Client()


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================


@pytest.fixture
def fandom(db):
    """A tracked fandom with a TikTok handle."""
    from fandompulse.fandoms.models import Fandom, FandomPlatform

    fandom = Fandom.objects.create(name="BINI Blooms", slug="bini-blooms", fandom_group="BINI")
    FandomPlatform.objects.create(fandom=fandom, platform="tiktok", handle="@bini_ph")
    return fandom


@pytest.fixture
def other_fandom(db):
    from fandompulse.fandoms.models import Fandom, FandomPlatform

    fandom = Fandom.objects.create(name="SB19 A'TIN", slug="sb19-atin")
    FandomPlatform.objects.create(fandom=fandom, platform="instagram", handle="sb19official")
    FandomPlatform.objects.create(fandom=fandom, platform="youtube", handle="SB19Official")
    return fandom
