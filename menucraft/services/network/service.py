"""
Network Service

Single async REST client for the menu management API. Wraps
``httpx.AsyncClient`` and gives every endpoint a typed method:

    - Authentication: login, register
    - Restaurants: list, create, update, delete (optionally with image)
    - Branches: list, create (optionally with image), update, delete
    - Menu: list, create, update (optionally with USDZ model), delete, import

Every failure is raised as one of the ``menucraft.core.exceptions``
classes so callers only ever deal with ``APIError``.

Version: 1.0.0
"""

import logging
from pathlib import Path
from typing import Any, Optional, Sequence, Union
from urllib.parse import urlencode, urlparse

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from menucraft.core.config import Settings, get_settings
from menucraft.core.exceptions import (
    APIError,
    DecodingFailedError,
    EmptyResponseError,
    InvalidResponseError,
    InvalidURLError,
    NotFoundError,
    RequestFailedError,
    ServerError,
    UnauthorizedError,
)
from menucraft.schemas import (
    AuthResponse,
    BranchResponse,
    CreateBranchModel,
    CreateMenuItemModel,
    CreateRestaurantModel,
    ErrorResponse,
    MenuItemResponse,
    RestaurantResponse,
)
from menucraft.services.network.multipart import (
    MultipartForm,
    branch_form,
    menu_item_form,
    restaurant_form,
)

logger = logging.getLogger(__name__)


class NetworkService:
    """
    Async client for the menu management REST API.

    Attributes:
        base_url: URL every endpoint is appended to
        auth_header_name: Header carrying the session token
        provider_name: "mock" when wired to the mock backend, "http" otherwise

    Example:
        >>> service = NetworkService()
        >>> auth = await service.login("owner@example.com", "secret")
        >>> restaurants = await service.get_restaurants(token=auth.token)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
        provider_name: str = "http",
    ):
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.api_base_url).rstrip("/")
        self.auth_header_name = self.settings.auth_header_name
        self.provider_name = provider_name
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=self.settings.request_timeout,
        )

        logger.info(f"NetworkService initialized ({provider_name}, base_url={self.base_url})")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "NetworkService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ==========================================================================
    # AUTHENTICATION
    # ==========================================================================

    async def login(self, email: str, password: str) -> AuthResponse:
        body = {"email": email, "password": password}
        return await self._request("POST", "/auth/login", AuthResponse, json=body)

    async def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role: str = "owner",
    ) -> AuthResponse:
        body = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "password": password,
            "role": role,
        }
        return await self._request("POST", "/auth/register", AuthResponse, json=body)

    # ==========================================================================
    # RESTAURANTS
    # ==========================================================================

    async def get_restaurants(self, token: str) -> list[RestaurantResponse]:
        return await self._request("GET", "/restaurants", RestaurantResponse, many=True, token=token)

    async def create_restaurant(
        self,
        restaurant: CreateRestaurantModel,
        token: str,
        image_data: Optional[bytes] = None,
    ) -> RestaurantResponse:
        """Create a restaurant; an image switches the request to multipart."""
        if image_data is not None:
            form = restaurant_form(restaurant, image_data)
            return await self._request("POST", "/restaurants", RestaurantResponse, token=token, form=form)
        return await self._request(
            "POST", "/restaurants", RestaurantResponse, token=token, json=restaurant.to_wire()
        )

    async def update_restaurant(
        self,
        restaurant_id: str,
        restaurant: CreateRestaurantModel,
        token: str,
        image_data: Optional[bytes] = None,
    ) -> RestaurantResponse:
        endpoint = f"/restaurants/{restaurant_id}"
        if image_data is not None:
            form = restaurant_form(restaurant, image_data)
            return await self._request("PUT", endpoint, RestaurantResponse, token=token, form=form)
        return await self._request(
            "PUT", endpoint, RestaurantResponse, token=token, json=restaurant.to_wire()
        )

    async def delete_restaurant(self, restaurant_id: str, token: str) -> None:
        await self._request_without_response("DELETE", f"/restaurants/{restaurant_id}", token=token)

    # ==========================================================================
    # BRANCHES
    # ==========================================================================

    async def get_branches(
        self,
        token: str,
        restaurant_id: Optional[str] = None,
    ) -> list[BranchResponse]:
        return await self._request(
            "GET", "/branches", BranchResponse, many=True, token=token,
            params={"restaurantId": restaurant_id},
        )

    async def create_branch(
        self,
        branch: CreateBranchModel,
        token: str,
        image_data: Optional[bytes] = None,
    ) -> BranchResponse:
        logger.debug(f"Creating branch for restaurant '{branch.restaurant_id}'")
        if image_data is not None:
            form = branch_form(branch, image_data, self.settings)
            return await self._request("POST", "/branches", BranchResponse, token=token, form=form)
        return await self._request("POST", "/branches", BranchResponse, token=token, json=branch.to_wire())

    async def update_branch(
        self,
        branch_id: str,
        branch: CreateBranchModel,
        token: str,
    ) -> BranchResponse:
        return await self._request(
            "PUT", f"/branches/{branch_id}", BranchResponse, token=token, json=branch.to_wire()
        )

    async def delete_branch(self, branch_id: str, token: str) -> None:
        await self._request_without_response("DELETE", f"/branches/{branch_id}", token=token)

    # ==========================================================================
    # MENU ITEMS
    # ==========================================================================

    async def get_menu_items(
        self,
        token: str,
        restaurant_id: Optional[str] = None,
        branch_id: Optional[str] = None,
    ) -> list[MenuItemResponse]:
        return await self._request(
            "GET", "/menu", MenuItemResponse, many=True, token=token,
            params={"restaurantId": restaurant_id, "branchId": branch_id},
        )

    async def create_menu_item(
        self,
        menu_item: CreateMenuItemModel,
        token: str,
        model_data: Optional[bytes] = None,
    ) -> MenuItemResponse:
        """Create a menu item; model data switches the request to multipart."""
        if model_data is not None:
            return await self.upload_menu_item_with_model(menu_item, model_data, token)
        return await self._request("POST", "/menu", MenuItemResponse, token=token, json=menu_item.to_wire())

    async def update_menu_item(
        self,
        item_id: str,
        menu_item: CreateMenuItemModel,
        token: str,
        model_data: Optional[bytes] = None,
    ) -> MenuItemResponse:
        endpoint = f"/menu/{item_id}"
        if model_data is not None:
            return await self.upload_menu_item_with_model(
                menu_item, model_data, token, endpoint=endpoint, method="PUT"
            )
        return await self._request("PUT", endpoint, MenuItemResponse, token=token, json=menu_item.to_wire())

    async def upload_menu_item_with_model(
        self,
        menu_item: CreateMenuItemModel,
        model_data: bytes,
        token: str,
        endpoint: str = "/menu",
        method: str = "POST",
    ) -> MenuItemResponse:
        """Send a menu item together with its USDZ model as multipart."""
        form = menu_item_form(menu_item, model_data)
        logger.info(f"Uploading model ({len(model_data)} bytes) to: {method} {endpoint}")
        return await self._request(method, endpoint, MenuItemResponse, token=token, form=form)

    async def delete_menu_item(self, item_id: str, token: str) -> None:
        await self._request_without_response("DELETE", f"/menu/{item_id}", token=token)

    async def import_menu_items(
        self,
        restaurant_id: str,
        branch_id: str,
        item_ids: Sequence[str],
        token: str,
    ) -> list[MenuItemResponse]:
        """Copy restaurant menu items into a branch server-side."""
        body = {
            "restaurant_id": restaurant_id,
            "branch_id": branch_id,
            "item_ids": list(item_ids),
        }
        return await self._request("POST", "/menu/import", MenuItemResponse, many=True, token=token, json=body)

    # ==========================================================================
    # FILES & HEALTH
    # ==========================================================================

    @staticmethod
    def read_model_file(path: Union[str, Path]) -> Optional[bytes]:
        """
        Read a captured USDZ model from disk.

        Returns:
            File content, or None when the file cannot be read
        """
        try:
            return Path(path).read_bytes()
        except OSError as e:
            logger.error(f"Error reading model file {path}: {e}")
            return None

    async def health_check(self) -> bool:
        """Verify the API is reachable."""
        try:
            await self._request_without_response("GET", "/health")
        except APIError as e:
            logger.error(f"Health check failed - {e.message}")
            return False
        return True

    # ==========================================================================
    # GENERIC REQUEST HANDLING
    # ==========================================================================

    def _build_url(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> str:
        url = self.base_url + endpoint
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURLError()

        query = {key: value for key, value in (params or {}).items() if value is not None}
        if query:
            url += "?" + urlencode(query)
        return url

    async def _send(
        self,
        method: str,
        endpoint: str,
        token: Optional[str] = None,
        json: Optional[Any] = None,
        form: Optional[MultipartForm] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        url = self._build_url(endpoint, params)

        kwargs: dict[str, Any] = {}
        if form is not None:
            kwargs = form.request_kwargs()
            headers = kwargs.pop("headers")
        else:
            headers = {"Content-Type": "application/json"}
            if json is not None:
                kwargs["json"] = json
        if token:
            headers[self.auth_header_name] = token

        logger.debug(f"Request: {method} {url}")
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.InvalidURL:
            raise InvalidURLError()
        except httpx.HTTPError as e:
            logger.error(f"Request failed with error: {e!r}")
            raise RequestFailedError(e) from e

        logger.debug(f"Response status code: {response.status_code}")
        self._check_status(response)
        return response

    def _check_status(self, response: httpx.Response) -> None:
        """Map non-2xx statuses onto the error taxonomy."""
        status = response.status_code
        if 200 <= status < 300:
            return
        if status == 401:
            raise UnauthorizedError()
        if status == 404:
            raise NotFoundError()

        try:
            error = ErrorResponse.model_validate_json(response.content)
        except ValidationError:
            raise ServerError(f"Server error with status code: {status}", status_code=status)
        raise ServerError(error.message, status_code=status)

    async def _request(
        self,
        method: str,
        endpoint: str,
        schema: type[BaseModel],
        many: bool = False,
        token: Optional[str] = None,
        json: Optional[Any] = None,
        form: Optional[MultipartForm] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        response = await self._send(method, endpoint, token=token, json=json, form=form, params=params)
        return self._decode(response, schema, many)

    async def _request_without_response(
        self,
        method: str,
        endpoint: str,
        token: Optional[str] = None,
        json: Optional[Any] = None,
    ) -> None:
        await self._send(method, endpoint, token=token, json=json)

    def _decode(self, response: httpx.Response, schema: type[BaseModel], many: bool) -> Any:
        """
        Decode a successful response body into ``schema`` records.

        An empty body is decoded as ``{}`` (which only works for records
        whose fields are all optional); a list endpoint answering a single
        object yields a one-element list.
        """
        content = response.content
        if not content.strip():
            if many:
                raise EmptyResponseError()
            try:
                return schema.model_validate({})
            except ValidationError:
                raise EmptyResponseError()

        if response.headers.get("content-type", "").startswith("text/html"):
            raise InvalidResponseError()

        if not many:
            try:
                return schema.model_validate_json(content)
            except ValidationError as e:
                logger.warning(f"Decoding error: {e}")
                raise DecodingFailedError(e) from e

        try:
            return TypeAdapter(list[schema]).validate_json(content)
        except ValidationError as list_error:
            try:
                return [schema.model_validate_json(content)]
            except ValidationError:
                logger.warning(f"Failed to decode as array or single item: {list_error}")
                raise DecodingFailedError(list_error) from list_error
