from django.urls import path, include
from apps.common.views import live_health

urlpatterns = [
    path("external/", include("apps.catalog.urls")),
    path("internal/health/", live_health, name="api-internal-health"),
]
