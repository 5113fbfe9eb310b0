"""
CSV import/export of a restaurant's menu.

Format (column names and order are part of the compatibility surface):

    Name,Description,Price,Course Type,Custom Tags,Allergens

Tags and allergens are ``;``-separated inside their cell. ``Course Type`` holds
the original course label and ``Custom Tags`` the full tag list, so an
export re-imports to the same tags in the same order. Export quotes
every field. Import accepts the columns in any order (matched by name,
case-insensitively) and processes rows independently: a bad row is
reported and skipped, the rest are still created.
"""

import csv
import logging
from io import StringIO
from typing import Any

from django.utils.text import slugify

from apps.web.core.models import ALLERGEN_KEYS, Restaurant

from .exceptions import CSVFormatError, MenuValidationError
from .models import MenuItem
from .schemas import ImportResult, ImportRowError
from .services import MenuItemService

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Name", "Description", "Price", "Course Type", "Custom Tags", "Allergens"]
CURRENCY_SYMBOLS = "$£€"
MULTI_VALUE_SEPARATOR = ";"


def parse_price(raw: str) -> str:
    """Strip whitespace and a leading currency symbol: ``"$12.50"`` -> ``"12.50"``."""
    price = raw.strip()
    if price and price[0] in CURRENCY_SYMBOLS:
        price = price[1:].strip()
    return price


def split_multi(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(MULTI_VALUE_SEPARATOR) if part.strip()]


def _normalize_header(header: str) -> str:
    return header.strip().lower()


# =============================================================================
# Export
# =============================================================================


def _export_row(item: MenuItem) -> list[str]:
    return [
        item.name,
        item.description,
        item.price,
        item.course_original,
        MULTI_VALUE_SEPARATOR.join(item.course_tags),
        MULTI_VALUE_SEPARATOR.join(item.active_allergens),
    ]


def export_menu_csv(restaurant: Restaurant) -> str:
    """All items (draft and live) of ``restaurant`` as CSV text."""
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_COLUMNS)
    for item in MenuItem.objects.for_restaurant(restaurant.pk).in_display_order():
        writer.writerow(_export_row(item))
    return buffer.getvalue()


def export_filename(restaurant: Restaurant) -> str:
    return f"{slugify(restaurant.name) or 'restaurant'}_menu.csv"


# =============================================================================
# Import
# =============================================================================


def _column_index(header: list[str]) -> dict[str, int]:
    """Map each expected column to its position, or reject the file."""
    positions = {_normalize_header(name): i for i, name in enumerate(header)}
    missing = [col for col in CSV_COLUMNS if _normalize_header(col) not in positions]
    if missing:
        raise CSVFormatError.for_field(
            "csv_data", "Missing required columns: " + ", ".join(missing)
        )
    return {col: positions[_normalize_header(col)] for col in CSV_COLUMNS}


def _row_payload(
    row: list[str], columns: dict[str, int], restaurant_id: int
) -> dict[str, Any]:
    """Turn one CSV row into a MenuItemCreate payload."""

    def cell(name: str) -> str:
        return row[columns[name]]

    allergen_names = [name.lower() for name in split_multi(cell("Allergens"))]
    unknown = [name for name in allergen_names if name not in ALLERGEN_KEYS]
    if unknown:
        raise MenuValidationError.for_field(
            "Allergens", "Unknown allergen(s): " + ", ".join(unknown)
        )

    return {
        "restaurant_id": restaurant_id,
        "name": cell("Name").strip(),
        "description": cell("Description").strip(),
        "price": parse_price(cell("Price")),
        "course_original": cell("Course Type").strip(),
        "course_tags": split_multi(cell("Custom Tags")),
        "allergens": dict.fromkeys(allergen_names, True),
    }


def _error_message(exc: MenuValidationError) -> str:
    if not exc.details:
        return exc.message
    return "; ".join(f"{d.field}: {d.message}" for d in exc.details)


def import_menu_csv(
    service: MenuItemService,
    restaurant_id: int,
    text: str,
    acting_user: Any,
) -> ImportResult:
    """
    Create one menu item per data row of ``text``.

    Ownership is checked once up front. Rows go through the same
    validation as interactively created items. One ``imported`` event is
    published for the whole batch if anything was created.
    """
    restaurant = service.get_owned_restaurant(restaurant_id, acting_user)

    reader = csv.reader(StringIO(text.lstrip("\ufeff")))
    try:
        header = next(reader)
    except StopIteration as e:
        raise CSVFormatError.for_field("csv_data", "CSV file is empty") from e
    except csv.Error as e:
        raise CSVFormatError.for_field("csv_data", f"Unreadable CSV: {e}") from e
    columns = _column_index(header)

    result = ImportResult()
    created_ids: list[int] = []
    row_number = 0

    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            row_number += 1
            result.failed += 1
            result.errors.append(ImportRowError(row=row_number, message=str(e)))
            continue

        if not any(cell.strip() for cell in row):
            continue
        row_number += 1

        if len(row) != len(header):
            result.failed += 1
            result.errors.append(
                ImportRowError(
                    row=row_number,
                    message=f"Expected {len(header)} columns, got {len(row)}",
                )
            )
            continue

        try:
            payload = _row_payload(row, columns, restaurant.pk)
            item = service.create(payload, acting_user, notify=False)
        except MenuValidationError as e:
            result.failed += 1
            result.errors.append(ImportRowError(row=row_number, message=_error_message(e)))
            continue

        created_ids.append(item.pk)
        result.success += 1

    if created_ids:
        service.notify(restaurant.pk, "imported", created_ids)

    logger.info(
        "CSV import for restaurant %s: %d created, %d failed",
        restaurant.pk,
        result.success,
        result.failed,
    )
    return result
