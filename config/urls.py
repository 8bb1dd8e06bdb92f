from django.contrib import admin
from django.urls import path, include
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

schema_view = get_schema_view(
    openapi.Info(title="biohasl.ink API", default_version="v1"),
    public=True,
    permission_classes=[permissions.AllowAny],
)

urlpatterns = [
    path('admin/', admin.site.urls),

    # Webhooks sortants (endpoints + historique des livraisons)
    path("api/webhooks/", include("webhooks.urls")),

    # Documentation OpenAPI
    path("api/docs/", schema_view.with_ui("swagger", cache_timeout=0), name="api-docs"),
]
