"""
Scrape API URL routing.

- POST /api/scrape/batch - start a fleet ingest in the background
- GET /api/scrape/status - latest scrape runs
- POST /api/scrape/trends - run trends collection
- GET /api/scrape/trends/status - trends job record
"""

from django.urls import path

from fandompulse.fandoms.api import views

app_name = "scrape_api"

urlpatterns = [
    path("batch", views.trigger_batch, name="batch"),
    path("status", views.scrape_status, name="status"),
    path("trends", views.trigger_trends, name="trends"),
    path("trends/status", views.trends_status, name="trends-status"),
]
