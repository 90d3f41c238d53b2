"""
URL configuration for the Fandom Pulse backend.

- Admin
- Scrape / trends operator endpoints under /api/scrape/
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path(
        "api/scrape/",
        include("fandompulse.fandoms.api.urls", namespace="scrape_api"),
    ),
]
