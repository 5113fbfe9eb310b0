"""
URL configuration for Live Menu.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # JSON API
    path("api/", include("apps.web.core.urls")),
    path("api/", include("apps.web.menu.urls")),
]
