import asyncio

import pytest

from menucraft.core.config import Settings
from menucraft.schemas import CreateBranchModel, CreateMenuItemModel, CreateRestaurantModel
from menucraft.services.network import MockBackend, NetworkService
from menucraft.services.network.mock import DEMO_EMAIL, DEMO_PASSWORD
from menucraft.session import UserSession

BASE_URL = "http://testserver/api"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        api_base_url=BASE_URL,
        session_directory=str(tmp_path),
    )


@pytest.fixture
def backend(settings) -> MockBackend:
    return MockBackend(settings=settings)


@pytest.fixture
def network(backend, settings) -> NetworkService:
    service = NetworkService(transport=backend.transport(), settings=settings, provider_name="mock")
    yield service
    asyncio.run(service.aclose())


@pytest.fixture
def session(network, settings) -> UserSession:
    return UserSession(network=network, settings=settings)


@pytest.fixture
def logged_in_session(session) -> UserSession:
    assert asyncio.run(session.login(DEMO_EMAIL, DEMO_PASSWORD))
    return session


@pytest.fixture
def token(logged_in_session) -> str:
    return logged_in_session.auth_token


def make_restaurant(**overrides) -> CreateRestaurantModel:
    fields = {
        'name': 'Trattoria Roma',
        'cuisine': 'Italian',
        'address': '12 Via Appia',
        'city': 'Boston',
        'state': 'MA',
        'zip_code': '02108',
        'phone': '+1-617-555-0100',
        'email': 'ciao@roma.example',
        'website': 'https://roma.example',
        'description': 'Family run trattoria',
    }
    fields.update(overrides)
    return CreateRestaurantModel(**fields)


def make_branch(restaurant_id, **overrides) -> CreateBranchModel:
    fields = {
        'name': 'Back Bay',
        'restaurant_id': restaurant_id,
        'address': '500 Boylston St',
        'city': 'Boston',
        'state': 'MA',
        'zip_code': '02116',
        'phone': '+1-617-555-0101',
        'email': 'backbay@roma.example',
    }
    fields.update(overrides)
    return CreateBranchModel(**fields)


def make_menu_item(restaurant_id, **overrides) -> CreateMenuItemModel:
    fields = {
        'title': 'Tiramisu',
        'description': 'Mascarpone, espresso, cocoa',
        'price': 7.5,
        'category': 'Desserts',
        'restaurant_id': restaurant_id,
        'is_vegetarian': True,
    }
    fields.update(overrides)
    return CreateMenuItemModel(**fields)
