"""Django app configuration for the fandoms app."""

from django.apps import AppConfig


class FandomsConfig(AppConfig):
    """Configuration for the fandoms app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "fandompulse.fandoms"
    verbose_name = "Fandom Pulse"
