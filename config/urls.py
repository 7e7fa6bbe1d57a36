# config/urls.py
from django.contrib import admin
from django.urls import include, path

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from lg_core.links.views import short_link_redirect

urlpatterns = [
    path("admin/", admin.site.urls),

    # OpenAPI
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # Public short links (patients land here)
    path("s/<str:short_code>", short_link_redirect, name="short-link"),
    path("s/<str:short_code>/", short_link_redirect),

    # Primary versioned API
    path("api/v1/", include("lg_core.api.urls")),
]
