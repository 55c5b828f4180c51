from django.conf import settings
from django.urls import path, include
from apps.common.views import live_health, ready_health
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)

urlpatterns = [
    path(f"api/{settings.API_VERSION}/", include("apps.api.urls")),
    path("health", live_health, name="health-live"),
    path("health/ready", ready_health, name="health-ready"),
]

# Interactive schema only in DEBUG; production serves the API alone.
if settings.DEBUG:
    urlpatterns += [
        path("schema/", SpectacularAPIView.as_view(), name="schema"),
        path(
            "docs/swagger/",
            SpectacularSwaggerView.as_view(url_name="schema"),
            name="swagger-ui",
        ),
        path(
            "docs/redoc/",
            SpectacularRedocView.as_view(url_name="schema"),
            name="redoc",
        ),
    ]

handler404 = "apps.api.views.not_found"
handler500 = "apps.api.views.server_error"
