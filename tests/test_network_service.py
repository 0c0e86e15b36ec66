import asyncio
import json

import httpx
import pytest

from menucraft.core.exceptions import (
    DecodingFailedError,
    EmptyResponseError,
    InvalidResponseError,
    InvalidURLError,
    NotFoundError,
    RequestFailedError,
    ServerError,
    UnauthorizedError,
)
from menucraft.schemas import CreateMenuItemModel
from menucraft.services.network import NetworkService

from conftest import make_branch, make_menu_item, make_restaurant

RESTAURANT_JSON = {
    "_id": "r1",
    "name": "Trattoria Roma",
    "cuisine": "Italian",
    "address": "12 Via Appia",
    "city": "Boston",
    "state": "MA",
    "zipCode": "02108",
    "phone": "555",
    "email": "ciao@roma.example",
    "website": "",
    "description": "",
    "status": "active",
    "owner": "u1",
    "createdAt": "2024-01-01T00:00:00Z",
}


def service_for(handler, settings, base_url=None) -> NetworkService:
    return NetworkService(base_url=base_url, transport=httpx.MockTransport(handler), settings=settings)


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# STATUS MAPPING
# =============================================================================

@pytest.mark.parametrize("status,error", [
    (401, UnauthorizedError),
    (404, NotFoundError),
])
def test_status_codes_map_to_errors(settings, status, error):
    service = service_for(lambda request: httpx.Response(status, json={"message": "nope"}), settings)

    with pytest.raises(error):
        run(service.get_restaurants(token="t"))


def test_server_error_uses_message_from_body(settings):
    service = service_for(lambda request: httpx.Response(400, json={"message": "Invalid credentials"}), settings)

    with pytest.raises(ServerError) as exc_info:
        run(service.login("a@b.c", "wrong"))

    assert exc_info.value.message == "Invalid credentials"
    assert exc_info.value.status_code == 400


def test_server_error_without_message(settings):
    service = service_for(lambda request: httpx.Response(500, text="boom"), settings)

    with pytest.raises(ServerError) as exc_info:
        run(service.get_restaurants(token="t"))

    assert exc_info.value.message == "Server error with status code: 500"


# =============================================================================
# DECODING
# =============================================================================

def test_list_endpoint_accepts_single_object(settings):
    service = service_for(lambda request: httpx.Response(200, json=RESTAURANT_JSON), settings)

    restaurants = run(service.get_restaurants(token="t"))

    assert [r.id for r in restaurants] == ["r1"]


def test_list_endpoint_decodes_array(settings):
    second = {**RESTAURANT_JSON, "_id": "r2"}
    service = service_for(lambda request: httpx.Response(200, json=[RESTAURANT_JSON, second]), settings)

    assert [r.id for r in run(service.get_restaurants(token="t"))] == ["r1", "r2"]


def test_empty_body_for_list_raises(settings):
    service = service_for(lambda request: httpx.Response(200, content=b""), settings)

    with pytest.raises(EmptyResponseError):
        run(service.get_restaurants(token="t"))


def test_empty_body_for_record_raises(settings):
    service = service_for(lambda request: httpx.Response(201, content=b""), settings)

    with pytest.raises(EmptyResponseError):
        run(service.create_restaurant(make_restaurant(), token="t"))


def test_invalid_json_raises_decoding_failed(settings):
    service = service_for(lambda request: httpx.Response(200, json={"unexpected": True}), settings)

    with pytest.raises(DecodingFailedError) as exc_info:
        run(service.get_restaurants(token="t"))

    assert exc_info.value.message.startswith("Failed to decode response:")


def test_html_body_is_invalid_response(settings):
    service = service_for(
        lambda request: httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"}),
        settings,
    )

    with pytest.raises(InvalidResponseError):
        run(service.get_restaurants(token="t"))


def test_delete_ignores_body(settings):
    service = service_for(lambda request: httpx.Response(204), settings)
    assert run(service.delete_restaurant("r1", token="t")) is None


# =============================================================================
# TRANSPORT & URLS
# =============================================================================

def test_transport_error_becomes_request_failed(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = service_for(handler, settings)

    with pytest.raises(RequestFailedError) as exc_info:
        run(service.get_restaurants(token="t"))

    assert exc_info.value.message == "Request failed: connection refused"
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


def test_invalid_base_url(settings):
    service = service_for(lambda request: httpx.Response(200, json=[]), settings, base_url="not a url")

    with pytest.raises(InvalidURLError):
        run(service.get_restaurants(token="t"))


def test_request_carries_token_json_and_query(settings):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    service = service_for(handler, settings)
    run(service.get_menu_items(token="secret", restaurant_id="r1"))
    run(service.import_menu_items("r1", "b1", ["m1", "m2"], token="secret"))

    get, post = seen
    assert get.headers["x-auth-token"] == "secret"
    assert get.headers["content-type"] == "application/json"
    assert str(get.url) == "http://testserver/api/menu?restaurantId=r1"
    assert post.url.path == "/api/menu/import"
    assert json.loads(post.content) == {"restaurant_id": "r1", "branch_id": "b1", "item_ids": ["m1", "m2"]}


def test_login_sends_no_token(settings):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(400, json={"message": "Invalid credentials"})

    service = service_for(handler, settings)
    with pytest.raises(ServerError):
        run(service.login("a@b.c", "pw"))

    assert "x-auth-token" not in seen[0].headers


def test_model_upload_is_multipart(settings):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(400, json={"message": "stop"})

    service = service_for(handler, settings)
    item = CreateMenuItemModel(title="Soup", price=4.5, category="Starters", restaurant_id="r1")
    with pytest.raises(ServerError):
        run(service.update_menu_item("m1", item, token="t", model_data=b"usdz"))

    request = seen[0]
    assert request.method == "PUT"
    assert request.url.path == "/api/menu/m1"
    assert request.headers["content-type"].startswith("multipart/form-data; boundary=Boundary-")
    assert b'name="modelUrl"; filename="model.usdz"' in request.content


def test_read_model_file(tmp_path):
    path = tmp_path / "dish.usdz"
    path.write_bytes(b"usdz-data")

    assert NetworkService.read_model_file(path) == b"usdz-data"
    assert NetworkService.read_model_file(tmp_path / "missing.usdz") is None


# =============================================================================
# AGAINST THE MOCK BACKEND
# =============================================================================

def test_health_check(network):
    assert run(network.health_check()) is True


def test_full_flow_against_mock_backend(network, token, backend):
    async def flow():
        restaurant = await network.create_restaurant(make_restaurant(), token=token, image_data=b"jpeg")
        item = await network.create_menu_item(make_menu_item(restaurant.id), token=token, model_data=b"usdz")
        branch = await network.create_branch(make_branch(restaurant.id), token=token)
        branch_items = await network.get_menu_items(token=token, restaurant_id=restaurant.id, branch_id=branch.id)
        return restaurant, item, branch, branch_items

    restaurant, item, branch, branch_items = run(flow())

    assert restaurant.image_url.endswith("-image.jpg")
    assert restaurant.status == "active"
    assert item.has_model
    assert item.price == 7.5
    assert item.is_vegetarian is True
    assert branch.table_count == 10
    assert branch.weekday_hours == "08:00 AM - 10:00 PM"
    assert [i.title for i in branch_items] == ["Tiramisu"]
    assert branch_items[0].branch_id == branch.id
    assert backend.requests[-1].url.params["branchId"] == branch.id


def test_branch_multipart_without_default_menu(network, token):
    async def flow():
        restaurant = await network.create_restaurant(make_restaurant(), token=token)
        await network.create_menu_item(make_menu_item(restaurant.id), token=token)
        branch = await network.create_branch(
            make_branch(restaurant.id, include_default_menu=False, table_count=4),
            token=token,
            image_data=b"jpeg",
        )
        items = await network.get_menu_items(token=token, restaurant_id=restaurant.id, branch_id=branch.id)
        return branch, items

    branch, items = run(flow())

    assert branch.table_count == 4
    assert branch.image_url is not None
    assert items == []


def test_update_and_delete_against_mock_backend(network, token):
    async def flow():
        restaurant = await network.create_restaurant(make_restaurant(), token=token)
        updated = await network.update_restaurant(restaurant.id, make_restaurant(name="Roma Nuova"), token=token)
        await network.delete_restaurant(restaurant.id, token=token)
        remaining = await network.get_restaurants(token=token)
        return updated, remaining

    updated, remaining = run(flow())

    assert updated.name == "Roma Nuova"
    assert remaining == []


def test_deleting_unknown_item_is_not_found(network, token):
    with pytest.raises(NotFoundError):
        run(network.delete_menu_item("does-not-exist", token=token))
