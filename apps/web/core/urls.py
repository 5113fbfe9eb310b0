"""
URL routing for account and restaurant endpoints.
"""

from django.urls import path

from apps.web.core import views

app_name = "core"

urlpatterns = [
    # Session auth
    path("register", views.register, name="register"),
    path("login", views.login_view, name="login"),
    path("logout", views.logout_view, name="logout"),
    # Account
    path("user", views.current_user, name="current_user"),
    path("user/preferences", views.preferences, name="preferences"),
    # Restaurants
    path("restaurants", views.restaurants, name="restaurants"),
    path(
        "restaurants/<int:restaurant_id>",
        views.restaurant_detail,
        name="restaurant_detail",
    ),
]
