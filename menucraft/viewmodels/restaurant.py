"""Restaurant list and restaurant CRUD."""

from typing import Optional

from menucraft.schemas import CreateRestaurantModel, RestaurantResponse
from menucraft.viewmodels.base import BaseViewModel, OperationResult


class RestaurantViewModel(BaseViewModel):
    """Published ``restaurants`` owned by the current user."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.restaurants: list[RestaurantResponse] = []

    async def fetch_restaurants(self) -> bool:
        return await self._load(
            "restaurants",
            lambda token: self.network.get_restaurants(token=token),
        )

    async def create_restaurant(
        self,
        restaurant: CreateRestaurantModel,
        image_data: Optional[bytes] = None,
    ) -> OperationResult[RestaurantResponse]:
        return await self._perform(
            lambda token: self.network.create_restaurant(restaurant, token=token, image_data=image_data),
            lambda created: {"restaurants": [*self.restaurants, created]},
        )

    async def update_restaurant(
        self,
        restaurant_id: str,
        restaurant: CreateRestaurantModel,
        image_data: Optional[bytes] = None,
    ) -> OperationResult[RestaurantResponse]:
        return await self._perform(
            lambda token: self.network.update_restaurant(
                restaurant_id, restaurant, token=token, image_data=image_data
            ),
            lambda updated: {
                "restaurants": [updated if r.id == restaurant_id else r for r in self.restaurants]
            },
        )

    async def delete_restaurant(self, restaurant_id: str) -> OperationResult[None]:
        return await self._perform(
            lambda token: self.network.delete_restaurant(restaurant_id, token=token),
            lambda _: {"restaurants": [r for r in self.restaurants if r.id != restaurant_id]},
        )
