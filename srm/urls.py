"""URL configuration."""
from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path("auth/", include("accounts.urls")),
    path("api/", include("dashboard.urls")),
    path("api/manage/", include("dashboard.admin_urls")),
    path("django-admin/", admin.site.urls),
]
