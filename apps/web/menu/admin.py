"""Admin registrations for menu models."""

from django.contrib import admin

from .models import ConsumerMenuItem, Image, MenuItem


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["name", "restaurant", "price", "status", "display_order"]
    list_filter = ["status", "restaurant"]
    list_editable = ["status", "display_order"]
    search_fields = ["name", "description"]
    raw_id_fields = ["image_ref"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(ConsumerMenuItem)
class ConsumerMenuItemAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["name", "user", "source", "created_at"]
    list_filter = ["source"]
    search_fields = ["name", "description", "user__email"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Image)
class ImageAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["filename", "restaurant", "content_type", "created_at"]
    search_fields = ["filename"]
    exclude = ["data"]
    readonly_fields = ["storage_path", "created_at"]
