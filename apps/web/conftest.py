"""
Pytest configuration for Django app tests.
"""

from django.test import Client as DjangoClient

import pytest

from apps.web.core.models import Restaurant, User
from apps.web.core.tests.factories import (
    ConsumerFactory,
    RestaurantFactory,
    RestaurantOwnerFactory,
)
from apps.web.menu.schemas import MenuUpdateEvent
from apps.web.menu.services import MenuItemService


class RecordingNotifier:
    """Notifier that remembers every published event."""

    def __init__(self) -> None:
        self.events: list[MenuUpdateEvent] = []

    def publish(self, restaurant_id: int, event: MenuUpdateEvent) -> int:
        self.events.append(event)
        return 1

    def for_restaurant(self, restaurant_id: int) -> list[MenuUpdateEvent]:
        return [e for e in self.events if e.restaurant_id == restaurant_id]


@pytest.fixture
def owner() -> User:
    """A restaurant operator."""
    return RestaurantOwnerFactory(email="owner@example.com")


@pytest.fixture
def other_owner() -> User:
    """A second operator who must never touch ``owner``'s menus."""
    return RestaurantOwnerFactory(email="rival@example.com")


@pytest.fixture
def consumer() -> User:
    """A diner account."""
    return ConsumerFactory(email="diner@example.com")


@pytest.fixture
def restaurant(owner: User) -> Restaurant:
    return RestaurantFactory(owner=owner, name="Tony's Pizza")


@pytest.fixture
def other_restaurant(other_owner: User) -> Restaurant:
    return RestaurantFactory(owner=other_owner, name="Rival Diner")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(notifier: RecordingNotifier) -> MenuItemService:
    """A menu service wired to a recording notifier."""
    return MenuItemService(notifier=notifier)


@pytest.fixture
def api_client() -> DjangoClient:
    """Anonymous Django test client."""
    return DjangoClient()


@pytest.fixture
def owner_client(owner: User) -> DjangoClient:
    """Test client logged in as ``owner``."""
    client = DjangoClient()
    client.force_login(owner)
    return client


@pytest.fixture
def consumer_client(consumer: User) -> DjangoClient:
    """Test client logged in as ``consumer``."""
    client = DjangoClient()
    client.force_login(consumer)
    return client
