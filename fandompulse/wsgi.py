"""WSGI entrypoint for the Fandom Pulse backend."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fandompulse.settings")

application = get_wsgi_application()
