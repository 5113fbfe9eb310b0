import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.web.menu.models


def _base_item_fields() -> list[tuple[str, models.Field]]:
    return [
        (
            "id",
            models.BigAutoField(
                auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
            ),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("name", models.CharField(blank=True, max_length=200)),
        (
            "name_original",
            models.CharField(
                blank=True,
                help_text="Name in the menu's original language",
                max_length=200,
            ),
        ),
        ("description", models.TextField()),
        ("price", models.CharField(blank=True, max_length=50)),
        (
            "image",
            models.TextField(
                blank=True, help_text="Inline data URL or external image URL"
            ),
        ),
        ("course_tags", models.JSONField(blank=True, default=list)),
        ("course_original", models.CharField(blank=True, max_length=200)),
        ("display_order", models.IntegerField(default=0)),
        (
            "status",
            models.CharField(
                choices=[("draft", "Draft"), ("live", "Live")],
                default="draft",
                max_length=10,
            ),
        ),
        (
            "allergens",
            models.JSONField(default=apps.web.menu.models.default_allergens),
        ),
        (
            "dietary_preferences",
            models.JSONField(default=apps.web.menu.models.default_dietary_preferences),
        ),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Image",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("filename", models.CharField(max_length=255)),
                ("content_type", models.CharField(max_length=100)),
                ("data", models.TextField(help_text="Base64-encoded image bytes")),
                (
                    "storage_path",
                    models.CharField(
                        blank=True,
                        help_text="Direct download URL from the image store",
                        max_length=500,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "restaurant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="images",
                        to="core.restaurant",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="MenuItem",
            fields=[
                *_base_item_fields(),
                (
                    "restaurant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="menu_items",
                        to="core.restaurant",
                    ),
                ),
                (
                    "image_ref",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="menu_items",
                        to="menu.image",
                    ),
                ),
            ],
            options={
                "ordering": ["display_order", "pk"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["restaurant", "status"],
                        name="menuitem_restaurant_status_idx",
                    ),
                    models.Index(
                        fields=["restaurant", "display_order"],
                        name="menuitem_restaurant_order_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ConsumerMenuItem",
            fields=[
                *_base_item_fields(),
                (
                    "source",
                    models.CharField(
                        choices=[("upload", "Upload"), ("manual", "Manual")],
                        default="upload",
                        max_length=20,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="consumer_menu_items",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["display_order", "pk"],
                "abstract": False,
            },
        ),
    ]
