"""
Pydantic Schemas for API Records

Value records mirroring the REST resources of the menu management API:
- Authentication (user, permissions, token)
- Restaurants
- Branches
- Menu items (with optional 3D model)

The server is not consistent about key style, so incoming payloads may use
snake_case, camelCase or MongoDB's ``_id``; every record normalizes keys
before validation. Outgoing JSON bodies are always snake_case.

Version: 1.0.0
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_snake


def normalize_keys(data: Any) -> Any:
    """
    Map the top-level keys of a payload onto snake_case field names.

    ``_id`` becomes ``id`` unless the payload already has an ``id``.
    Non-dict payloads are returned untouched so validation reports them.
    """
    if not isinstance(data, dict):
        return data

    normalized: dict[str, Any] = {}
    for key, value in data.items():
        if key == "_id":
            normalized.setdefault("id", value)
        elif isinstance(key, str):
            normalized[to_snake(key)] = value
        else:
            normalized[key] = value
    return normalized


class APISchema(BaseModel):
    """Base for every record exchanged with the API."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        return normalize_keys(data)

    def to_wire(self) -> dict[str, Any]:
        """JSON body for this record: snake_case keys, unset optionals dropped."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# AUTHENTICATION
# =============================================================================

class Permissions(APISchema):
    manage_users: bool = False
    manage_restaurants: bool = False
    manage_branches: bool = False
    access_pos: bool = False


class BranchPermissions(APISchema):
    menu: List[str] = Field(default_factory=list)
    tables: List[str] = Field(default_factory=list)


class UserResponse(APISchema):
    """A user account as returned by /auth endpoints."""
    id: str
    first_name: str
    last_name: str
    email: str
    role: str
    restaurant_id: Optional[str] = None
    branch_id: Optional[str] = None
    permissions: Optional[Permissions] = None
    branch_permissions: Optional[BranchPermissions] = None
    created_at: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AuthResponse(APISchema):
    token: str
    user: UserResponse


# =============================================================================
# RESTAURANTS
# =============================================================================

class CreateRestaurantModel(APISchema):
    """Payload for creating or updating a restaurant."""
    name: str = Field(..., min_length=1)
    cuisine: str
    address: str
    city: str
    state: str
    zip_code: str
    phone: str
    email: str
    website: str = ""
    description: str = ""
    status: Optional[str] = None
    image_url: Optional[str] = None


class RestaurantResponse(APISchema):
    id: str
    name: str
    cuisine: str
    address: str
    city: str
    state: str
    zip_code: str
    phone: str
    email: str
    website: str
    description: str
    status: str
    image_url: Optional[str] = None
    owner: Optional[str] = None
    created_at: str


# =============================================================================
# BRANCHES
# =============================================================================

class CreateBranchModel(APISchema):
    """Payload for creating or updating a branch."""
    name: str = Field(..., min_length=1)
    restaurant_id: str
    address: str
    city: str
    state: str
    zip_code: str
    phone: str
    email: str
    manager_id: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    weekday_hours: Optional[str] = None
    weekend_hours: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[str] = None
    table_count: Optional[int] = Field(None, ge=0)
    include_default_menu: Optional[bool] = None

    @field_validator("restaurant_id", mode="before")
    @classmethod
    def coerce_restaurant_id(cls, v: Any) -> str:
        """The API matches restaurant ids as strings, numeric ids included."""
        if v is None:
            raise ValueError("restaurant_id is required")
        return str(v)


class BranchResponse(APISchema):
    id: str
    name: str
    restaurant_id: str
    address: str
    city: str
    state: str
    zip_code: str
    phone: str
    email: str
    manager_id: Optional[str] = None
    opening_time: str
    closing_time: str
    weekday_hours: str
    weekend_hours: str
    description: str
    image_url: Optional[str] = None
    status: str
    table_count: int
    created_at: str


# =============================================================================
# MENU ITEMS
# =============================================================================

class CreateMenuItemModel(APISchema):
    """Payload for creating or updating a menu item."""
    title: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0)
    category: str
    status: Optional[str] = None
    restaurant_id: str
    branch_id: Optional[str] = None
    image_url: Optional[str] = None
    model_url: Optional[str] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    featured: Optional[bool] = None

    @classmethod
    def from_item(
        cls,
        item: "MenuItemResponse",
        restaurant_id: str,
        branch_id: Optional[str] = None,
    ) -> "CreateMenuItemModel":
        """Copy an existing item, re-targeted at another restaurant/branch."""
        return cls(
            title=item.title,
            description=item.description,
            price=item.price,
            category=item.category,
            status=item.status,
            restaurant_id=restaurant_id,
            branch_id=branch_id,
            image_url=item.image_url,
            model_url=item.model_url,
            is_vegetarian=item.is_vegetarian,
            is_vegan=item.is_vegan,
            is_gluten_free=item.is_gluten_free,
            featured=item.featured,
        )


class MenuItemResponse(APISchema):
    id: str
    title: str
    description: str
    price: float
    category: str
    status: str
    restaurant_id: str
    branch_id: Optional[str] = None
    image_url: Optional[str] = None
    model_url: Optional[str] = None
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    featured: bool
    created_at: str

    @property
    def has_model(self) -> bool:
        """Whether a 3D (USDZ) model is attached to this dish."""
        return bool(self.model_url)


# =============================================================================
# UTILITY
# =============================================================================

class ErrorResponse(APISchema):
    """Error body sent by the server alongside non-2xx statuses."""
    message: str
