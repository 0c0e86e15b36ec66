"""
Menu View-Model

Menu items and categories of a restaurant or one of its branches, plus
importing restaurant items into a branch.

Categories have no endpoint of their own: they are derived from the
loaded items, and ``add_category`` only extends the local list until an
item is created in the new category.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from pydantic import ValidationError

from menucraft.core.exceptions import (
    APIError,
    AUTH_REQUIRED_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    UnauthorizedError,
)
from menucraft.schemas import CreateMenuItemModel, MenuItemResponse
from menucraft.viewmodels.base import BaseViewModel, OperationResult

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """
    Result of copying items into a branch one by one.

    Attributes:
        imported: Items created in the branch
        failed: Ids of the source items that could not be copied
    """
    imported: list[MenuItemResponse] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def all_imported(self) -> bool:
        return not self.failed


class MenuViewModel(BaseViewModel):
    """Published ``menu_items`` and sorted ``categories``."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.menu_items: list[MenuItemResponse] = []
        self.categories: list[str] = []

    async def fetch_menu_items(self, restaurant_id: str, branch_id: Optional[str] = None) -> bool:
        logger.debug(f"Fetching menu items for restaurant {restaurant_id} (branch={branch_id})")
        return await self._load(
            "menu_items",
            lambda token: self.network.get_menu_items(
                token=token, restaurant_id=restaurant_id, branch_id=branch_id
            ),
        )

    async def fetch_categories(self, restaurant_id: str, branch_id: Optional[str] = None) -> None:
        """Derive categories from the menu; failures are only logged."""
        token = self.session.auth_token
        if not token:
            return

        try:
            items = await self.network.get_menu_items(
                token=token, restaurant_id=restaurant_id, branch_id=branch_id
            )
        except APIError as e:
            logger.error(f"Error fetching categories: {e.message}")
            return
        except Exception:
            logger.exception("Unexpected error fetching categories")
            return

        self._publish(categories=sorted({item.category for item in items}))

    def add_category(self, category_name: str) -> bool:
        """Add a category locally, keeping the list sorted and unique."""
        if not self.session.auth_token:
            self._publish(error_message=AUTH_REQUIRED_MESSAGE)
            return False

        name = category_name.strip()
        if not name:
            return False
        if name not in self.categories:
            self._publish(categories=sorted([*self.categories, name]))
        return True

    async def create_menu_item(
        self,
        menu_item: CreateMenuItemModel,
        model_data: Optional[bytes] = None,
    ) -> OperationResult[MenuItemResponse]:
        return await self._perform(
            lambda token: self.network.create_menu_item(menu_item, token=token, model_data=model_data),
            lambda created: {
                "menu_items": [*self.menu_items, created],
                "categories": sorted({*self.categories, created.category}),
            },
        )

    async def update_menu_item(
        self,
        item_id: str,
        menu_item: CreateMenuItemModel,
        model_data: Optional[bytes] = None,
    ) -> OperationResult[MenuItemResponse]:
        return await self._perform(
            lambda token: self.network.update_menu_item(
                item_id, menu_item, token=token, model_data=model_data
            ),
            lambda updated: {
                "menu_items": [updated if m.id == item_id else m for m in self.menu_items],
                "categories": sorted({*self.categories, updated.category}),
            },
        )

    async def delete_menu_item(self, item_id: str) -> bool:
        """Delete an item; failures are published through ``error_message``."""
        token = self.session.auth_token
        if not token:
            self._publish(error_message=AUTH_REQUIRED_MESSAGE)
            return False

        try:
            await self.network.delete_menu_item(item_id, token=token)
        except APIError as e:
            self._publish(error_message=e.message)
            return False
        except Exception:
            logger.exception(f"Unexpected error deleting menu item {item_id}")
            self._publish(error_message=UNEXPECTED_ERROR_MESSAGE)
            return False

        self._publish(menu_items=[m for m in self.menu_items if m.id != item_id])
        return True

    # ==========================================================================
    # IMPORT INTO BRANCH
    # ==========================================================================

    async def import_items_to_branch(
        self,
        restaurant_id: str,
        branch_id: str,
        item_ids: Sequence[str],
    ) -> OperationResult[ImportSummary]:
        """
        Copy selected loaded items into a branch, one create call per item.

        An item that fails to copy is recorded in the summary and the
        import carries on with the next one.
        """
        token = self.session.auth_token
        if not token:
            return OperationResult.fail(UnauthorizedError())

        selected = set(item_ids)
        summary = ImportSummary()
        self._publish(is_loading=True)
        try:
            for item in [m for m in self.menu_items if m.id in selected]:
                try:
                    model = CreateMenuItemModel.from_item(
                        item, restaurant_id=restaurant_id, branch_id=branch_id
                    )
                    summary.imported.append(await self.network.create_menu_item(model, token=token))
                except APIError as e:
                    logger.error(f"Error importing item {item.title}: {e.message}")
                    summary.failed.append(item.id)
                except ValidationError as e:
                    logger.error(f"Item {item.id} cannot be copied: {e.errors()[0]['msg']}")
                    summary.failed.append(item.id)
        finally:
            self._publish(is_loading=False)

        logger.info(
            f"Imported {len(summary.imported)} item(s) into branch {branch_id}, "
            f"{len(summary.failed)} failed"
        )
        return OperationResult.ok(summary)

    async def import_menu_items(
        self,
        restaurant_id: str,
        branch_id: str,
        item_ids: Sequence[str],
    ) -> OperationResult[list[MenuItemResponse]]:
        """Bulk import through the server-side /menu/import endpoint."""
        return await self._perform(
            lambda token: self.network.import_menu_items(
                restaurant_id, branch_id, item_ids, token=token
            ),
            lambda imported: {},
        )
