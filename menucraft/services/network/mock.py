"""
Mock Backend Implementation

In-memory implementation of the menu management REST API, served through
``httpx.MockTransport``. Used in development mode (ENV_MODE=development)
and by the test suite, so the client can run without a server.

Behavior:
    - Same routes, status codes and error bodies as the real API
    - Responses use camelCase keys and MongoDB style ``_id``
    - Optional simulated latency and random 503 failures
    - Optional JSON state file so data survives between CLI invocations

Version: 1.0.0
"""

import asyncio
import json
import logging
import random
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from filelock import FileLock
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from menucraft.core.config import Settings, get_settings
from menucraft.schemas import (
    CreateBranchModel,
    CreateMenuItemModel,
    CreateRestaurantModel,
    normalize_keys,
)
from menucraft.services.network.multipart import parse_multipart

logger = logging.getLogger(__name__)

DEMO_USER_ID = "000000000000000000000001"
DEMO_EMAIL = "demo@menucraft.dev"
DEMO_PASSWORD = "password"


class MockHTTPError(Exception):
    """Raised inside route handlers to answer with an error status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_id() -> str:
    return uuid.uuid4().hex[:24]


def to_wire_record(record: dict[str, Any]) -> dict[str, Any]:
    """Stored snake_case record -> camelCase JSON with ``_id``."""
    return {
        ("_id" if key == "id" else to_camel(key)): value
        for key, value in record.items()
        if key != "password"
    }


class MockBackend:
    """
    Mock implementation of the menu management API.

    Attributes:
        failure_rate: Probability of a simulated 503 (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds
        requests: Every request received, oldest first

    Example:
        >>> backend = MockBackend()
        >>> client = httpx.AsyncClient(transport=backend.transport())
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        base_url: Optional[str] = None,
        state_path: Optional[Path] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.base_path = urlparse(base_url or self.settings.api_base_url).path.rstrip("/")
        self.state_path = state_path

        self.users: dict[str, dict[str, Any]] = {}
        self.tokens: dict[str, str] = {}
        self.restaurants: dict[str, dict[str, Any]] = {}
        self.branches: dict[str, dict[str, Any]] = {}
        self.menu_items: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []

        self._load_state()
        if not self.users:
            self.seed_demo_user()

        logger.info(
            f"MockBackend initialized "
            f"(failure_rate={failure_rate:.0%}, users={len(self.users)})"
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def seed_demo_user(self) -> dict[str, Any]:
        """Create the demo owner account used in development mode."""
        user = {
            "id": DEMO_USER_ID,
            "first_name": "Demo",
            "last_name": "Owner",
            "email": DEMO_EMAIL,
            "password": DEMO_PASSWORD,
            "role": "owner",
            "restaurant_id": None,
            "branch_id": None,
            "permissions": {
                "manage_users": True,
                "manage_restaurants": True,
                "manage_branches": True,
                "access_pos": True,
            },
            "created_at": _now(),
        }
        self.users[user["id"]] = user
        return user

    # ==========================================================================
    # STATE PERSISTENCE
    # ==========================================================================

    def _load_state(self) -> None:
        if self.state_path is None or not self.state_path.exists():
            return
        lock = FileLock(str(self.state_path) + ".lock", timeout=self.settings.session_lock_timeout)
        try:
            with lock:
                state = json.loads(self.state_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read mock state {self.state_path}, starting fresh: {e}")
            return
        if not isinstance(state, dict):
            logger.warning(f"Mock state {self.state_path} is not a JSON object, starting fresh")
            return
        self.users = state.get("users", {})
        self.tokens = state.get("tokens", {})
        self.restaurants = state.get("restaurants", {})
        self.branches = state.get("branches", {})
        self.menu_items = state.get("menu_items", {})
        logger.debug(f"Mock state loaded from {self.state_path}")

    def _save_state(self) -> None:
        if self.state_path is None:
            return
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        state = {
            "users": self.users,
            "tokens": self.tokens,
            "restaurants": self.restaurants,
            "branches": self.branches,
            "menu_items": self.menu_items,
        }
        lock = FileLock(str(self.state_path) + ".lock", timeout=self.settings.session_lock_timeout)
        with lock:
            self.state_path.write_text(json.dumps(state, indent=2), encoding="utf-8")

    # ==========================================================================
    # REQUEST HANDLING
    # ==========================================================================

    async def _simulate_latency(self) -> None:
        if self.max_latency <= 0:
            return
        await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def handle(self, request: httpx.Request) -> httpx.Response:
        """Entry point called by httpx.MockTransport."""
        self.requests.append(request)
        await self._simulate_latency()

        if self._should_fail():
            logger.debug("Mock: Simulated server failure")
            return self._json(503, {"message": "Service temporarily unavailable"})

        path = request.url.path
        if self.base_path and path.startswith(self.base_path):
            path = path[len(self.base_path):]
        segments = [s for s in path.split("/") if s]

        try:
            status, payload = self._route(request, segments)
        except MockHTTPError as e:
            return self._json(e.status_code, {"message": e.message})

        if request.method != "GET":
            self._save_state()
        return self._json(status, payload)

    def _json(self, status: int, payload: Any) -> httpx.Response:
        return httpx.Response(status, json=payload)

    def _route(self, request: httpx.Request, segments: list[str]) -> tuple[int, Any]:
        method = request.method

        if segments == ["health"]:
            return 200, {"status": "ok"}
        if segments == ["auth", "login"] and method == "POST":
            return self._login(self._body(request))
        if segments == ["auth", "register"] and method == "POST":
            return self._register(self._body(request))

        user = self._authenticate(request)

        if not segments:
            raise MockHTTPError(404, "Route not found")
        resource, rest = segments[0], segments[1:]

        if resource == "restaurants":
            return self._restaurants(request, user, rest)
        if resource == "branches":
            return self._branches(request, user, rest)
        if resource == "menu":
            return self._menu(request, user, rest)

        raise MockHTTPError(404, "Route not found")

    def _body(self, request: httpx.Request) -> dict[str, Any]:
        """Decoded request body, JSON or multipart, with snake_case keys."""
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("multipart/form-data"):
            fields, files = parse_multipart(request.content, content_type)
            body: dict[str, Any] = dict(fields)
            for name, (filename, content) in files.items():
                # image parts are stored as imageUrl, the model part is already named modelUrl
                body["imageUrl" if name == "image" else name] = f"/uploads/{_new_id()}-{filename}"
                logger.debug(f"Mock: Stored upload {filename} ({len(content)} bytes)")
            return normalize_keys(body)

        if not request.content:
            return {}
        try:
            body = json.loads(request.content)
        except ValueError:
            raise MockHTTPError(400, "Malformed JSON body")
        if not isinstance(body, dict):
            raise MockHTTPError(400, "Request body must be an object")
        return normalize_keys(body)

    def _authenticate(self, request: httpx.Request) -> dict[str, Any]:
        token = request.headers.get(self.settings.auth_header_name)
        if not token:
            raise MockHTTPError(401, "No token, authorization denied")
        user_id = self.tokens.get(token)
        if user_id is None or user_id not in self.users:
            raise MockHTTPError(401, "Token is not valid")
        return self.users[user_id]

    @staticmethod
    def _validate(model: type, data: dict[str, Any]) -> dict[str, Any]:
        try:
            return model(**data).model_dump(mode="json")
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first["loc"])
            raise MockHTTPError(400, f"Invalid {field}: {first['msg']}")

    # ==========================================================================
    # AUTH
    # ==========================================================================

    def _issue_token(self, user: dict[str, Any]) -> dict[str, Any]:
        token = uuid.uuid4().hex
        self.tokens[token] = user["id"]
        return {"token": token, "user": to_wire_record(user)}

    def _login(self, body: dict[str, Any]) -> tuple[int, Any]:
        email = (body.get("email") or "").strip().lower()
        for user in self.users.values():
            if user["email"].lower() == email and user["password"] == body.get("password"):
                return 200, self._issue_token(user)
        raise MockHTTPError(400, "Invalid credentials")

    def _register(self, body: dict[str, Any]) -> tuple[int, Any]:
        required = ["first_name", "last_name", "email", "password"]
        missing = [key for key in required if not body.get(key)]
        if missing:
            raise MockHTTPError(400, f"Missing required fields: {', '.join(missing)}")

        email = body["email"].strip().lower()
        if any(u["email"].lower() == email for u in self.users.values()):
            raise MockHTTPError(400, "User already exists")

        user = {
            "id": _new_id(),
            "first_name": body["first_name"],
            "last_name": body["last_name"],
            "email": email,
            "password": body["password"],
            "role": body.get("role") or "owner",
            "restaurant_id": None,
            "branch_id": None,
            "permissions": None,
            "created_at": _now(),
        }
        self.users[user["id"]] = user
        return 201, self._issue_token(user)

    # ==========================================================================
    # RESTAURANTS
    # ==========================================================================

    def _owned_restaurant(self, user: dict[str, Any], restaurant_id: str) -> dict[str, Any]:
        restaurant = self.restaurants.get(restaurant_id)
        if restaurant is None:
            raise MockHTTPError(404, "Restaurant not found")
        if restaurant["owner"] != user["id"]:
            raise MockHTTPError(403, "Not authorized to access this restaurant")
        return restaurant

    def _restaurants(self, request: httpx.Request, user: dict[str, Any], rest: list[str]) -> tuple[int, Any]:
        method = request.method

        if not rest:
            if method == "GET":
                owned = [r for r in self.restaurants.values() if r["owner"] == user["id"]]
                return 200, [to_wire_record(r) for r in owned]
            if method == "POST":
                data = self._validate(CreateRestaurantModel, self._body(request))
                restaurant = {
                    "id": _new_id(),
                    **data,
                    "status": data.get("status") or "active",
                    "owner": user["id"],
                    "created_at": _now(),
                }
                self.restaurants[restaurant["id"]] = restaurant
                if not user.get("restaurant_id"):
                    user["restaurant_id"] = restaurant["id"]
                return 201, to_wire_record(restaurant)
            raise MockHTTPError(405, "Method not allowed")

        restaurant = self._owned_restaurant(user, rest[0])

        if method == "GET":
            return 200, to_wire_record(restaurant)
        if method == "PUT":
            data = self._validate(CreateRestaurantModel, {**restaurant, **self._body(request)})
            restaurant.update(data)
            restaurant["status"] = restaurant.get("status") or "active"
            return 200, to_wire_record(restaurant)
        if method == "DELETE":
            for branch_id in [b["id"] for b in self.branches.values() if b["restaurant_id"] == restaurant["id"]]:
                del self.branches[branch_id]
            for item_id in [m["id"] for m in self.menu_items.values() if m["restaurant_id"] == restaurant["id"]]:
                del self.menu_items[item_id]
            del self.restaurants[restaurant["id"]]
            return 200, {"message": "Restaurant removed"}
        raise MockHTTPError(405, "Method not allowed")

    # ==========================================================================
    # BRANCHES
    # ==========================================================================

    def _branch_record(self, data: dict[str, Any]) -> dict[str, Any]:
        table_count = data.get("table_count")
        return {
            **data,
            "opening_time": data.get("opening_time") or self.settings.default_opening_time,
            "closing_time": data.get("closing_time") or self.settings.default_closing_time,
            "weekday_hours": data.get("weekday_hours") or self.settings.default_weekday_hours,
            "weekend_hours": data.get("weekend_hours") or self.settings.default_weekend_hours,
            "description": data.get("description") or "",
            "status": data.get("status") or "active",
            "table_count": self.settings.default_table_count if table_count is None else table_count,
        }

    def _branches(self, request: httpx.Request, user: dict[str, Any], rest: list[str]) -> tuple[int, Any]:
        method = request.method

        if not rest:
            if method == "GET":
                restaurant_id = request.url.params.get("restaurantId")
                branches = [
                    b for b in self.branches.values()
                    if self.restaurants.get(b["restaurant_id"], {}).get("owner") == user["id"]
                    and (restaurant_id is None or b["restaurant_id"] == restaurant_id)
                ]
                return 200, [to_wire_record(b) for b in branches]
            if method == "POST":
                data = self._validate(CreateBranchModel, self._body(request))
                restaurant = self._owned_restaurant(user, data["restaurant_id"])
                include_default_menu = data.pop("include_default_menu", None)
                branch = {
                    "id": _new_id(),
                    **self._branch_record(data),
                    "created_at": _now(),
                }
                self.branches[branch["id"]] = branch
                if include_default_menu is not False:
                    restaurant_items = [
                        m for m in self.menu_items.values()
                        if m["restaurant_id"] == restaurant["id"] and m.get("branch_id") is None
                    ]
                    for item in restaurant_items:
                        self._copy_item(item, branch["id"])
                return 201, to_wire_record(branch)
            raise MockHTTPError(405, "Method not allowed")

        branch = self.branches.get(rest[0])
        if branch is None:
            raise MockHTTPError(404, "Branch not found")
        self._owned_restaurant(user, branch["restaurant_id"])

        if method == "GET":
            return 200, to_wire_record(branch)
        if method == "PUT":
            data = self._validate(CreateBranchModel, {**branch, **self._body(request)})
            self._owned_restaurant(user, data["restaurant_id"])
            data.pop("include_default_menu", None)
            branch.update(self._branch_record(data))
            return 200, to_wire_record(branch)
        if method == "DELETE":
            for item_id in [m["id"] for m in self.menu_items.values() if m.get("branch_id") == branch["id"]]:
                del self.menu_items[item_id]
            del self.branches[branch["id"]]
            return 200, {"message": "Branch removed"}
        raise MockHTTPError(405, "Method not allowed")

    # ==========================================================================
    # MENU
    # ==========================================================================

    def _menu_record(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            **data,
            "status": data.get("status") or "active",
            "is_vegetarian": bool(data.get("is_vegetarian")),
            "is_vegan": bool(data.get("is_vegan")),
            "is_gluten_free": bool(data.get("is_gluten_free")),
            "featured": bool(data.get("featured")),
        }

    def _check_branch(self, data: dict[str, Any]) -> None:
        """A menu item's branch must exist and belong to the item's restaurant."""
        branch_id = data.get("branch_id")
        if not branch_id:
            return
        branch = self.branches.get(branch_id)
        if branch is None or branch["restaurant_id"] != data["restaurant_id"]:
            raise MockHTTPError(404, "Branch not found")

    def _copy_item(self, item: dict[str, Any], branch_id: str) -> dict[str, Any]:
        copy = {**item, "id": _new_id(), "branch_id": branch_id, "created_at": _now()}
        self.menu_items[copy["id"]] = copy
        return copy

    def _menu(self, request: httpx.Request, user: dict[str, Any], rest: list[str]) -> tuple[int, Any]:
        method = request.method

        if not rest:
            if method == "GET":
                restaurant_id = request.url.params.get("restaurantId")
                branch_id = request.url.params.get("branchId")
                items = []
                for item in self.menu_items.values():
                    if self.restaurants.get(item["restaurant_id"], {}).get("owner") != user["id"]:
                        continue
                    if restaurant_id is not None and item["restaurant_id"] != restaurant_id:
                        continue
                    if branch_id is not None:
                        if item.get("branch_id") != branch_id:
                            continue
                    elif restaurant_id is not None and item.get("branch_id") is not None:
                        continue
                    items.append(to_wire_record(item))
                return 200, items
            if method == "POST":
                data = self._validate(CreateMenuItemModel, self._body(request))
                self._owned_restaurant(user, data["restaurant_id"])
                self._check_branch(data)
                item = {"id": _new_id(), **self._menu_record(data), "created_at": _now()}
                self.menu_items[item["id"]] = item
                return 201, to_wire_record(item)
            raise MockHTTPError(405, "Method not allowed")

        if rest == ["import"] and method == "POST":
            return self._import(user, self._body(request))

        item = self.menu_items.get(rest[0])
        if item is None:
            raise MockHTTPError(404, "Menu item not found")
        self._owned_restaurant(user, item["restaurant_id"])

        if method == "GET":
            return 200, to_wire_record(item)
        if method == "PUT":
            data = self._validate(CreateMenuItemModel, {**item, **self._body(request)})
            self._owned_restaurant(user, data["restaurant_id"])
            self._check_branch(data)
            item.update(self._menu_record(data))
            return 200, to_wire_record(item)
        if method == "DELETE":
            del self.menu_items[item["id"]]
            return 200, {"message": "Menu item removed"}
        raise MockHTTPError(405, "Method not allowed")

    def _import(self, user: dict[str, Any], body: dict[str, Any]) -> tuple[int, Any]:
        restaurant_id = body.get("restaurant_id")
        branch_id = body.get("branch_id")
        item_ids = body.get("item_ids") or []
        if not restaurant_id or not branch_id:
            raise MockHTTPError(400, "restaurantId and branchId are required")

        self._owned_restaurant(user, restaurant_id)
        branch = self.branches.get(branch_id)
        if branch is None or branch["restaurant_id"] != restaurant_id:
            raise MockHTTPError(404, "Branch not found")

        imported = []
        for item_id in item_ids:
            item = self.menu_items.get(item_id)
            if item is None or item["restaurant_id"] != restaurant_id:
                continue
            imported.append(to_wire_record(self._copy_item(item, branch_id)))
        return 201, imported
