"""
Django settings for the Fandom Pulse backend.

- Loads secrets from environment variables (.env via python-dotenv)
- Database via DATABASE_URL (postgres in production)
- Provider credentials, failover routing and rate-limit constants
"""

import json
import os
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

# Load .env file if present (for local dev)
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str = "False") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


# =============================================================================
# SECURITY SETTINGS (env-driven)
# =============================================================================

SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY",
    "dev-insecure-key-do-not-use-in-production",
)

DEBUG = _env_bool("DJANGO_DEBUG")

ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")


# =============================================================================
# APPLICATION DEFINITION
# =============================================================================

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "corsheaders",
    # Fandom Pulse apps
    "fandompulse.fandoms",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "fandompulse.urls"
WSGI_APPLICATION = "fandompulse.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]


# =============================================================================
# DATABASE (via DATABASE_URL)
# =============================================================================

# Default to sqlite for local setup; production runs on postgres
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
)

DATABASES = {
    "default": dj_database_url.parse(
        DATABASE_URL,
        conn_max_age=600,
        conn_health_checks=True,
    )
}


# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


# =============================================================================
# STATIC FILES
# =============================================================================

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# =============================================================================
# CORS SETTINGS
# =============================================================================

CORS_ALLOWED_ORIGINS = os.environ.get(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000",
).split(",")

CORS_ALLOW_CREDENTIALS = True


# =============================================================================
# PROVIDERS
# =============================================================================

# Managed-actor provider (Apify). Disabled by default to prevent spend.
APIFY_ENABLED = _env_bool("APIFY_ENABLED")
APIFY_TOKEN = os.environ.get("APIFY_TOKEN", "")
APIFY_BASE_URL = os.environ.get("APIFY_BASE_URL", "https://api.apify.com")
APIFY_RUN_TIMEOUT_S = int(os.environ.get("APIFY_RUN_TIMEOUT_S", "300"))

# Direct proxied API provider (SociaVault via the monitor proxy)
SOCIAVAULT_API_KEY = os.environ.get("SOCIAVAULT_API_KEY", "")
MONITOR_PROXY_URL = os.environ.get("MONITOR_PROXY_URL", "http://sociavault-monitor:3080")
MONITOR_API_KEY = os.environ.get("MONITOR_API_KEY", "")

PROVIDER_TIMEOUT_S = int(os.environ.get("PROVIDER_TIMEOUT_S", "30"))

# Per-platform primary/secondary provider. Override with a JSON object in
# PROVIDER_ROUTING, e.g. {"reddit": {"primary": "apify", "secondary": "sociavault"}}
PROVIDER_ROUTING = {
    platform: {"primary": "sociavault", "secondary": "apify"}
    for platform in ("reddit", "tiktok", "instagram", "youtube", "twitter", "facebook")
}
PROVIDER_ROUTING.update(json.loads(os.environ.get("PROVIDER_ROUTING", "{}")))


# =============================================================================
# INGESTION
# =============================================================================

SCRAPE_ITEM_LIMIT = int(os.environ.get("SCRAPE_ITEM_LIMIT", "20"))
FLEET_BATCH_SIZE = int(os.environ.get("FLEET_BATCH_SIZE", "3"))
FLEET_BATCH_DELAY_S = float(os.environ.get("FLEET_BATCH_DELAY_S", "2"))
SCRAPE_ACTIVE_WINDOW_MINUTES = 30


# =============================================================================
# GOOGLE TRENDS
# =============================================================================

TRENDS_GEO = os.environ.get("TRENDS_GEO", "PH")
TRENDS_TIMEFRAME = os.environ.get("TRENDS_TIMEFRAME", "today 3-m")
TRENDS_BATCH_SIZE = int(os.environ.get("TRENDS_BATCH_SIZE", "5"))
TRENDS_ANCHOR_KEYWORDS = ["BTS", "BINI", "SB19", "SEVENTEEN", "NewJeans"]
TRENDS_RETRY_DELAY_S = 12
TRENDS_BATCH_DELAY_S = 8
TRENDS_WIDGET_DELAY_S = 2
TRENDS_SESSION_DELAY_S = 1.5
TRENDS_REGIONAL_DELAY_S = 10
TRENDS_TIMEOUT_S = 15
TRENDS_JOB_STALE_MINUTES = 30


# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "fandompulse": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
