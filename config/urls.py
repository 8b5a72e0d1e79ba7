from django.contrib import admin
from django.urls import include, path

from core import views as core_views

admin.site.site_header = "Aberturas ERP"

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", core_views.health_check, name="health"),
    path("api/", include("api.urls")),
]
