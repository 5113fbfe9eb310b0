"""
URL routing for menu API endpoints.

Diner endpoints (public menu, update stream) need no authentication.
"""

from django.urls import path

from apps.web.menu import views

app_name = "menu"

urlpatterns = [
    # Owner: menu items
    path("menu-items", views.menu_items, name="menu_items"),
    path("menu-items/bulk-delete", views.bulk_delete, name="bulk_delete"),
    path("menu-items/bulk-update", views.bulk_update, name="bulk_update"),
    path("menu-items/upload", views.upload_image, name="upload_image"),
    path("menu-items/<int:item_id>", views.menu_item_detail, name="menu_item_detail"),
    path(
        "menu-items/<int:item_id>/status",
        views.menu_item_status,
        name="menu_item_status",
    ),
    path("restaurants/<int:restaurant_id>/reorder", views.reorder, name="reorder"),
    # CSV
    path(
        "restaurants/<int:restaurant_id>/menu/export",
        views.export_menu,
        name="export_menu",
    ),
    path(
        "restaurants/<int:restaurant_id>/menu/import",
        views.import_menu,
        name="import_menu",
    ),
    # Diners
    path(
        "restaurants/<int:restaurant_id>/public-menu",
        views.public_menu_view,
        name="public_menu",
    ),
    path(
        "menu-updates/<int:restaurant_id>",
        views.menu_updates,
        name="menu_updates",
    ),
    # Consumers
    path(
        "consumer/menu-items",
        views.consumer_menu_items,
        name="consumer_menu_items",
    ),
    path(
        "consumer/menu-items/<int:item_id>",
        views.consumer_menu_item_detail,
        name="consumer_menu_item_detail",
    ),
]
