"""
Multipart Form Builder

Image and 3D model uploads go to the API as multipart/form-data. The form
field names follow the server's camelCase convention, which differs from
the snake_case used for JSON bodies.

The actual encoding is done by httpx; MultipartForm only fixes the field
order, string rendering, defaults and a ``Boundary-<uuid>`` boundary.

Usage:
    form = restaurant_form(restaurant, image_bytes)
    await client.request("POST", url, **form.request_kwargs())
"""

import uuid
from dataclasses import dataclass, field
from email.parser import BytesParser
from email.policy import HTTP
from typing import Any, Optional

import httpx

from menucraft.core.config import Settings, get_settings
from menucraft.schemas import CreateBranchModel, CreateMenuItemModel, CreateRestaurantModel

IMAGE_FILENAME = "image.jpg"
IMAGE_CONTENT_TYPE = "image/jpeg"
MODEL_FILENAME = "model.usdz"
MODEL_CONTENT_TYPE = "application/octet-stream"


def render_value(value: Any) -> str:
    """Render a form value the way the API parses it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class MultipartForm:
    """
    Ordered multipart/form-data body.

    Attributes:
        boundary: Part separator, ``Boundary-<uuid4>`` by default
        fields: Text fields in insertion order
        files: File parts as (field name, (filename, content, content type))
    """
    boundary: str = field(default_factory=lambda: f"Boundary-{uuid.uuid4()}")
    fields: dict[str, str] = field(default_factory=dict)
    files: list[tuple[str, tuple[str, bytes, str]]] = field(default_factory=list)

    def add_field(self, name: str, value: Any) -> "MultipartForm":
        self.fields[name] = render_value(value)
        return self

    def add_file(
        self,
        name: str,
        filename: str,
        content: bytes,
        content_type: str = MODEL_CONTENT_TYPE,
    ) -> "MultipartForm":
        self.files.append((name, (filename, content, content_type)))
        return self

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def request_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient.request``."""
        return {
            "data": self.fields,
            "files": self.files,
            "headers": {"Content-Type": self.content_type},
        }

    def encode(self) -> bytes:
        """Full request body, as it would be sent on the wire."""
        request = httpx.Request("POST", "http://localhost/", **self.request_kwargs())
        return request.read()


# =============================================================================
# FORMS PER RESOURCE
# =============================================================================

def restaurant_form(restaurant: CreateRestaurantModel, image_data: bytes) -> MultipartForm:
    """Restaurant create/update form with a JPEG image."""
    form = MultipartForm()
    form.add_field("name", restaurant.name)
    form.add_field("cuisine", restaurant.cuisine)
    form.add_field("address", restaurant.address)
    form.add_field("city", restaurant.city)
    form.add_field("state", restaurant.state)
    form.add_field("zipCode", restaurant.zip_code)
    form.add_field("phone", restaurant.phone)
    form.add_field("email", restaurant.email)
    form.add_field("website", restaurant.website)
    form.add_field("description", restaurant.description)
    form.add_field("status", restaurant.status or "active")
    form.add_file("image", IMAGE_FILENAME, image_data, IMAGE_CONTENT_TYPE)
    return form


def branch_form(
    branch: CreateBranchModel,
    image_data: bytes,
    settings: Optional[Settings] = None,
) -> MultipartForm:
    """Branch create form with a JPEG image; unset hours fall back to settings."""
    settings = settings or get_settings()

    form = MultipartForm()
    form.add_field(
        "includeDefaultMenu",
        True if branch.include_default_menu is None else branch.include_default_menu,
    )
    form.add_field("name", branch.name)
    form.add_field("restaurantId", branch.restaurant_id)
    form.add_field("address", branch.address)
    form.add_field("city", branch.city)
    form.add_field("state", branch.state)
    form.add_field("zipCode", branch.zip_code)
    form.add_field("phone", branch.phone)
    form.add_field("email", branch.email)
    form.add_field("openingTime", branch.opening_time or settings.default_opening_time)
    form.add_field("closingTime", branch.closing_time or settings.default_closing_time)
    form.add_field("weekdayHours", branch.weekday_hours or settings.default_weekday_hours)
    form.add_field("weekendHours", branch.weekend_hours or settings.default_weekend_hours)
    form.add_field("description", branch.description)
    form.add_field("status", branch.status or "active")
    form.add_field(
        "tableCount",
        settings.default_table_count if branch.table_count is None else branch.table_count,
    )
    form.add_file("image", IMAGE_FILENAME, image_data, IMAGE_CONTENT_TYPE)
    return form


def menu_item_form(item: CreateMenuItemModel, model_data: bytes) -> MultipartForm:
    """Menu item form carrying a USDZ model in the ``modelUrl`` part."""
    form = MultipartForm()
    form.add_field("title", item.title)
    form.add_field("description", item.description)
    form.add_field("price", item.price)
    form.add_field("category", item.category)
    form.add_field("status", item.status or "active")
    form.add_field("restaurantId", item.restaurant_id)
    if item.branch_id is not None:
        form.add_field("branchId", item.branch_id)
    form.add_field("isVegetarian", bool(item.is_vegetarian))
    form.add_field("isVegan", bool(item.is_vegan))
    form.add_field("isGlutenFree", bool(item.is_gluten_free))
    form.add_file("modelUrl", MODEL_FILENAME, model_data, MODEL_CONTENT_TYPE)
    return form


# =============================================================================
# DECODING
# =============================================================================

def parse_multipart(body: bytes, content_type: str) -> tuple[dict[str, str], dict[str, tuple[str, bytes]]]:
    """
    Split a multipart/form-data body into text fields and file parts.

    Returns:
        (fields, files) where files maps field name to (filename, content)

    Raises:
        ValueError: If the body is not multipart
    """
    if not content_type.startswith("multipart/form-data"):
        raise ValueError(f"Not a multipart body: {content_type}")

    header = f"Content-Type: {content_type}\r\n\r\n".encode("utf-8")
    message = BytesParser(policy=HTTP).parsebytes(header + body)

    fields: dict[str, str] = {}
    files: dict[str, tuple[str, bytes]] = {}
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if not name:
            continue
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        if filename:
            files[name] = (filename, payload)
        else:
            fields[name] = payload.decode("utf-8")
    return fields, files
