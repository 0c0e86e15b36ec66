import asyncio

import pytest

from menucraft.core.exceptions import AUTH_REQUIRED_MESSAGE, ServerError, UnauthorizedError
from menucraft.viewmodels import (
    BranchViewModel,
    MenuViewModel,
    OperationResult,
    RestaurantViewModel,
)

from conftest import make_branch, make_menu_item, make_restaurant


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def restaurants(logged_in_session, network):
    return RestaurantViewModel(session=logged_in_session, network=network)


@pytest.fixture
def branches(logged_in_session, network):
    return BranchViewModel(session=logged_in_session, network=network)


@pytest.fixture
def menu(logged_in_session, network):
    return MenuViewModel(session=logged_in_session, network=network)


@pytest.fixture
def restaurant(restaurants):
    return run(restaurants.create_restaurant(make_restaurant())).value


# =============================================================================
# OPERATION RESULT
# =============================================================================

def test_operation_result_messages():
    assert OperationResult.ok("x").message is None
    assert OperationResult.fail(ServerError("Nope")).message == "Nope"
    assert OperationResult.fail(RuntimeError("boom")).message == "An unexpected error occurred"


# =============================================================================
# RESTAURANTS
# =============================================================================

def test_fetch_requires_login(session, network):
    vm = RestaurantViewModel(session=session, network=network)

    assert not run(vm.fetch_restaurants())
    assert vm.error_message == AUTH_REQUIRED_MESSAGE


def test_actions_require_login(session, network):
    vm = RestaurantViewModel(session=session, network=network)

    result = run(vm.create_restaurant(make_restaurant()))

    assert not result.success
    assert isinstance(result.error, UnauthorizedError)


def test_restaurant_crud_updates_list(restaurants):
    created = run(restaurants.create_restaurant(make_restaurant()))
    assert created.success
    assert [r.name for r in restaurants.restaurants] == ["Trattoria Roma"]

    updated = run(restaurants.update_restaurant(created.value.id, make_restaurant(cuisine="Roman")))
    assert updated.success
    assert restaurants.restaurants[0].cuisine == "Roman"

    deleted = run(restaurants.delete_restaurant(created.value.id))
    assert deleted.success
    assert restaurants.restaurants == []


def test_fetch_restaurants(restaurants, restaurant, logged_in_session, network):
    fresh = RestaurantViewModel(session=logged_in_session, network=network)

    assert run(fresh.fetch_restaurants())
    assert [r.id for r in fresh.restaurants] == [restaurant.id]
    assert not fresh.is_loading
    assert fresh.error_message is None


def test_failed_action_keeps_list(restaurants, restaurant):
    result = run(restaurants.delete_restaurant("missing"))

    assert not result.success
    assert result.message == "Resource not found"
    assert [r.id for r in restaurants.restaurants] == [restaurant.id]
    assert not restaurants.is_loading


def test_subscribers_are_notified(restaurants):
    changes = []
    restaurants.subscribe(lambda vm, changed: changes.append(set(changed)))

    run(restaurants.create_restaurant(make_restaurant()))

    assert changes == [{"is_loading"}, {"restaurants", "is_loading"}]


# =============================================================================
# BRANCHES
# =============================================================================

def test_create_branch_refetches_list(branches, restaurant, menu):
    run(menu.create_menu_item(make_menu_item(restaurant.id)))

    result = run(branches.create_branch(make_branch(restaurant.id)))

    assert result.success
    assert [b.id for b in branches.branches] == [result.value.id]

    assert run(menu.fetch_menu_items(restaurant.id, branch_id=result.value.id))
    assert [m.title for m in menu.menu_items] == ["Tiramisu"]


def test_update_and_delete_branch(branches, restaurant):
    created = run(branches.create_branch(make_branch(restaurant.id))).value

    updated = run(branches.update_branch(created.id, make_branch(restaurant.id, name="Seaport", table_count=20)))
    assert updated.success
    assert branches.branches[0].name == "Seaport"
    assert branches.branches[0].table_count == 20

    deleted = run(branches.delete_branch(created.id))
    assert deleted.success
    assert branches.branches == []


def test_branch_for_foreign_restaurant_fails(branches):
    result = run(branches.create_branch(make_branch("unknown")))

    assert not result.success
    assert result.message == "Resource not found"
    assert branches.branches == []


# =============================================================================
# MENU
# =============================================================================

def test_menu_item_crud(menu, restaurant):
    created = run(menu.create_menu_item(make_menu_item(restaurant.id), model_data=b"usdz"))
    assert created.success
    assert created.value.has_model
    assert menu.categories == ["Desserts"]

    updated = run(menu.update_menu_item(created.value.id, make_menu_item(restaurant.id, price=8.0)))
    assert updated.success
    assert menu.menu_items[0].price == 8.0

    assert run(menu.delete_menu_item(created.value.id))
    assert menu.menu_items == []


def test_delete_unknown_item_sets_error(menu):
    assert not run(menu.delete_menu_item("missing"))
    assert menu.error_message == "Resource not found"


def test_fetch_categories_sorted_unique(menu, restaurant):
    for title, category in [("Tiramisu", "Desserts"), ("Bruschetta", "Starters"), ("Panna Cotta", "Desserts")]:
        run(menu.create_menu_item(make_menu_item(restaurant.id, title=title, category=category)))
    menu.categories = []

    run(menu.fetch_categories(restaurant.id))

    assert menu.categories == ["Desserts", "Starters"]


def test_fetch_categories_without_token_is_silent(session, network):
    vm = MenuViewModel(session=session, network=network)

    run(vm.fetch_categories("r1"))

    assert vm.categories == []
    assert vm.error_message is None


def test_add_category(menu):
    assert menu.add_category("  Starters ")
    assert menu.add_category("Desserts")
    assert menu.add_category("Starters")
    assert not menu.add_category("   ")

    assert menu.categories == ["Desserts", "Starters"]


def test_add_category_requires_login(session, network):
    vm = MenuViewModel(session=session, network=network)

    assert not vm.add_category("Drinks")
    assert vm.error_message == AUTH_REQUIRED_MESSAGE
    assert vm.categories == []


def test_import_items_to_branch(menu, branches, restaurant):
    first = run(menu.create_menu_item(make_menu_item(restaurant.id))).value
    second = run(menu.create_menu_item(make_menu_item(restaurant.id, title="Cannoli"))).value
    branch = run(branches.create_branch(make_branch(restaurant.id, include_default_menu=False))).value

    result = run(menu.import_items_to_branch(restaurant.id, branch.id, [first.id, second.id]))

    assert result.success
    assert result.value.all_imported
    assert sorted(i.title for i in result.value.imported) == ["Cannoli", "Tiramisu"]
    assert all(i.branch_id == branch.id for i in result.value.imported)


def test_import_continues_past_failures(menu, branches, restaurant, monkeypatch):
    first = run(menu.create_menu_item(make_menu_item(restaurant.id))).value
    second = run(menu.create_menu_item(make_menu_item(restaurant.id, title="Cannoli"))).value
    branch = run(branches.create_branch(make_branch(restaurant.id, include_default_menu=False))).value

    create = menu.network.create_menu_item

    async def flaky_create(menu_item, token, model_data=None):
        if menu_item.title == "Tiramisu":
            raise ServerError("Duplicate item")
        return await create(menu_item, token=token, model_data=model_data)

    monkeypatch.setattr(menu.network, "create_menu_item", flaky_create)

    result = run(menu.import_items_to_branch(restaurant.id, branch.id, [first.id, second.id]))

    assert result.success
    assert not result.value.all_imported
    assert result.value.failed == [first.id]
    assert [i.title for i in result.value.imported] == ["Cannoli"]
    assert not menu.is_loading


def test_import_requires_login(session, network):
    vm = MenuViewModel(session=session, network=network)

    result = run(vm.import_items_to_branch("r1", "b1", ["m1"]))

    assert isinstance(result.error, UnauthorizedError)


def test_bulk_import(menu, branches, restaurant):
    item = run(menu.create_menu_item(make_menu_item(restaurant.id))).value
    branch = run(branches.create_branch(make_branch(restaurant.id, include_default_menu=False))).value

    result = run(menu.import_menu_items(restaurant.id, branch.id, [item.id]))

    assert result.success
    assert [i.branch_id for i in result.value] == [branch.id]

    assert run(menu.fetch_menu_items(restaurant.id))
    assert [m.id for m in menu.menu_items] == [item.id]


def test_import_skips_items_that_cannot_be_copied(menu, branches, restaurant):
    good = run(menu.create_menu_item(make_menu_item(restaurant.id))).value
    branch = run(branches.create_branch(make_branch(restaurant.id, include_default_menu=False))).value
    untitled = good.model_copy(update={"id": "legacy-1", "title": ""})
    menu.menu_items = [untitled, good]

    result = run(menu.import_items_to_branch(restaurant.id, branch.id, ["legacy-1", good.id]))

    assert result.success
    assert result.value.failed == ["legacy-1"]
    assert [i.title for i in result.value.imported] == ["Tiramisu"]
    assert not menu.is_loading


def test_update_menu_item_adds_new_category(menu, restaurant):
    created = run(menu.create_menu_item(make_menu_item(restaurant.id))).value

    run(menu.update_menu_item(created.id, make_menu_item(restaurant.id, category="Pastry")))

    assert menu.categories == ["Desserts", "Pastry"]


def test_fetch_categories_logs_unexpected_errors(menu, monkeypatch):
    async def broken(**kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(menu.network, "get_menu_items", broken)

    run(menu.fetch_categories("r1"))

    assert menu.categories == []
