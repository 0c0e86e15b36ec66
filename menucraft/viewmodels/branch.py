"""Branches of one restaurant."""

from typing import Optional

from menucraft.schemas import BranchResponse, CreateBranchModel
from menucraft.viewmodels.base import BaseViewModel, OperationResult


class BranchViewModel(BaseViewModel):
    """Published ``branches`` of the restaurant last fetched."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.branches: list[BranchResponse] = []

    async def fetch_branches(self, restaurant_id: str) -> bool:
        return await self._load(
            "branches",
            lambda token: self.network.get_branches(token=token, restaurant_id=restaurant_id),
        )

    async def create_branch(
        self,
        branch: CreateBranchModel,
        image_data: Optional[bytes] = None,
    ) -> OperationResult[BranchResponse]:
        """Create a branch, then reload the restaurant's branch list."""
        result = await self._perform(
            lambda token: self.network.create_branch(branch, token=token, image_data=image_data),
            lambda created: {},
        )
        if result.success:
            # the server may also have copied the default menu; refetch rather than append
            await self.fetch_branches(branch.restaurant_id)
        return result

    async def update_branch(
        self,
        branch_id: str,
        branch: CreateBranchModel,
    ) -> OperationResult[BranchResponse]:
        return await self._perform(
            lambda token: self.network.update_branch(branch_id, branch, token=token),
            lambda updated: {
                "branches": [updated if b.id == branch_id else b for b in self.branches]
            },
        )

    async def delete_branch(self, branch_id: str) -> OperationResult[None]:
        return await self._perform(
            lambda token: self.network.delete_branch(branch_id, token=token),
            lambda _: {"branches": [b for b in self.branches if b.id != branch_id]},
        )
