"""
View-models: published state plus async actions, one per feature.
"""

from menucraft.viewmodels.base import BaseViewModel, OperationResult
from menucraft.viewmodels.branch import BranchViewModel
from menucraft.viewmodels.menu import ImportSummary, MenuViewModel
from menucraft.viewmodels.restaurant import RestaurantViewModel

__all__ = [
    "BaseViewModel",
    "OperationResult",
    "RestaurantViewModel",
    "BranchViewModel",
    "MenuViewModel",
    "ImportSummary",
]
