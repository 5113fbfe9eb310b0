"""
Tests for menu CSV import and export.
"""

import csv
from io import StringIO

import pytest

from apps.web.core.tests.factories import RestaurantFactory
from apps.web.menu.csv_io import (
    CSV_COLUMNS,
    export_filename,
    export_menu_csv,
    import_menu_csv,
    parse_price,
)
from apps.web.menu.exceptions import CSVFormatError, MenuAuthorizationError
from apps.web.menu.models import MenuItem

from .factories import LiveMenuItemFactory, MenuItemFactory

HEADER = "Name,Description,Price,Course Type,Custom Tags,Allergens\n"


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(StringIO(text)))


class TestParsePrice:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("$12.50", "12.50"),
            ("£8", "8"),
            ("€ 9.90", "9.90"),
            (" 7.00 ", "7.00"),
            ("", ""),
            ("Market price", "Market price"),
        ],
    )
    def test_strips_leading_currency(self, raw, expected) -> None:
        assert parse_price(raw) == expected


@pytest.mark.django_db
class TestExport:
    """Tests for export_menu_csv."""

    def test_header_and_rows(self, restaurant) -> None:
        """Every item is exported, drafts included, with every field quoted."""
        LiveMenuItemFactory(
            restaurant=restaurant,
            name="Penne Arrabbiata",
            description="Spicy tomato, garlic",
            price="14.00",
            course_original="Mains",
            course_tags=["Mains", "Spicy", "Vegan"],
            display_order=0,
        )
        draft = MenuItemFactory(
            restaurant=restaurant,
            name="Tiramisu",
            description="Coffee, mascarpone",
            price="7.50",
            display_order=1,
        )
        draft.allergens.update(milk=True, eggs=True)
        draft.save()

        text = export_menu_csv(restaurant)

        assert text.startswith('"Name","Description","Price"')
        assert _rows(text) == [
            CSV_COLUMNS,
            ["Penne Arrabbiata", "Spicy tomato, garlic", "14.00", "Mains", "Mains;Spicy;Vegan", ""],
            ["Tiramisu", "Coffee, mascarpone", "7.50", "", "", "milk;eggs"],
        ]

    def test_filename(self, restaurant) -> None:
        assert export_filename(restaurant) == "tonys-pizza_menu.csv"

    @pytest.mark.parametrize(
        ("course_original", "course_tags"),
        [
            ("Mains", ["Mains", "Noodles"]),
            ("Mains", ["Lunch"]),
            ("Mains", ["Noodles", "Mains"]),
            ("", ["Lunch"]),
            ("Mains", []),
        ],
    )
    def test_round_trip(
        self, service, owner, restaurant, course_original, course_tags
    ) -> None:
        """Exporting then importing into an empty restaurant reproduces the menu."""
        original = MenuItemFactory(
            restaurant=restaurant,
            name="Pad Thai",
            description='Rice noodles, "tamarind" sauce',
            price="13.00",
            course_original=course_original,
            course_tags=course_tags,
        )
        original.allergens.update(peanuts=True, shellfish=True)
        original.save()
        target = RestaurantFactory(owner=owner)

        result = import_menu_csv(service, target.pk, export_menu_csv(restaurant), owner)

        assert result.success == 1
        copy = MenuItem.objects.get(restaurant=target)
        assert copy.name == original.name
        assert copy.description == original.description
        assert copy.price == original.price
        assert copy.course_original == course_original
        assert copy.course_tags == course_tags
        assert copy.active_allergens == ["peanuts", "shellfish"]
        assert copy.status == "draft"


@pytest.mark.django_db
class TestImport:
    """Tests for import_menu_csv."""

    def test_creates_items(self, service, owner, restaurant) -> None:
        """Rows become draft items with the tags listed in Custom Tags."""
        text = HEADER + (
            '"Bruschetta","Grilled bread, tomato","$6.00",'
            '"Starters","Starters;Vegan;Shareable","gluten"\n'
        )

        result = import_menu_csv(service, restaurant.pk, text, owner)

        assert result.model_dump() == {"success": 1, "failed": 0, "errors": []}
        item = MenuItem.objects.get()
        assert item.price == "6.00"
        assert item.course_tags == ["Starters", "Vegan", "Shareable"]
        assert item.allergens["gluten"] is True
        assert item.status == "draft"

    def test_bad_row_is_skipped(self, service, owner, restaurant) -> None:
        """Five rows with the third invalid: four created, one reported."""
        rows = [
            "One,First dish,1,,,",
            "Two,Second dish,2,,,",
            "Three,,3,,,",
            "Four,Fourth dish,4,,,",
            "Five,Fifth dish,5,,,",
        ]

        result = import_menu_csv(service, restaurant.pk, HEADER + "\n".join(rows), owner)

        assert result.success == 4
        assert result.failed == 1
        assert result.errors[0].row == 3
        assert "description" in result.errors[0].message
        assert sorted(MenuItem.objects.values_list("name", flat=True)) == [
            "Five",
            "Four",
            "One",
            "Two",
        ]

    def test_short_row_is_skipped(self, service, owner, restaurant) -> None:
        """Five rows with the third missing columns: four created, one reported."""
        rows = [
            "One,First dish,1,,,",
            "Two,Second dish,2,,,",
            "Three,Third dish,3",
            "Four,Fourth dish,4,,,",
            "Five,Fifth dish,5,,,",
        ]

        result = import_menu_csv(service, restaurant.pk, HEADER + "\n".join(rows), owner)

        assert (result.success, result.failed) == (4, 1)
        assert result.errors[0].row == 3
        assert result.errors[0].message == "Expected 6 columns, got 3"
        assert MenuItem.objects.filter(restaurant=restaurant).count() == 4

    def test_missing_column_rejects_file(self, service, owner, restaurant) -> None:
        """A header without every required column creates nothing."""
        text = "Name,Description,Price\nSoup,Hot,4\n"

        with pytest.raises(CSVFormatError) as exc_info:
            import_menu_csv(service, restaurant.pk, text, owner)

        assert "Course Type" in exc_info.value.message
        assert not MenuItem.objects.exists()

    def test_columns_matched_by_name(self, service, owner, restaurant) -> None:
        """Column order and header case do not matter."""
        text = (
            "allergens,PRICE,name,description,custom tags,course type\n"
            "soy,£4,Edamame,Salted,Starters,Starters\n"
        )

        result = import_menu_csv(service, restaurant.pk, text, owner)

        assert result.success == 1
        item = MenuItem.objects.get()
        assert (item.name, item.price, item.course_tags) == ("Edamame", "4", ["Starters"])
        assert item.allergens["soy"] is True

    def test_unknown_allergen_fails_row(self, service, owner, restaurant) -> None:
        text = HEADER + "Celery soup,Creamy,5,,,celery\n"

        result = import_menu_csv(service, restaurant.pk, text, owner)

        assert (result.success, result.failed) == (0, 1)
        assert "celery" in result.errors[0].message

    def test_wrong_column_count_fails_row(self, service, owner, restaurant) -> None:
        text = HEADER + "Soup,Hot\n"

        result = import_menu_csv(service, restaurant.pk, text, owner)

        assert result.failed == 1
        assert result.errors[0].row == 1

    def test_blank_lines_and_bom_ignored(self, service, owner, restaurant) -> None:
        text = "\ufeff" + HEADER + "\n,,,,,\nSoup,Hot,4,,,\n\n"

        result = import_menu_csv(service, restaurant.pk, text, owner)

        assert (result.success, result.failed) == (1, 0)

    def test_single_event_for_batch(
        self, service, notifier, owner, restaurant, django_capture_on_commit_callbacks
    ) -> None:
        """The whole import publishes one imported event."""
        text = HEADER + "A,a,1,,,\nB,b,2,,,\n"

        with django_capture_on_commit_callbacks(execute=True):
            import_menu_csv(service, restaurant.pk, text, owner)

        assert [e.action for e in notifier.events] == ["imported"]
        assert len(notifier.events[0].item_ids) == 2

    def test_foreign_restaurant_forbidden(self, service, owner, other_restaurant) -> None:
        with pytest.raises(MenuAuthorizationError):
            import_menu_csv(service, other_restaurant.pk, HEADER + "A,a,1,,,\n", owner)

    def test_empty_file(self, service, owner, restaurant) -> None:
        with pytest.raises(CSVFormatError):
            import_menu_csv(service, restaurant.pk, "", owner)
