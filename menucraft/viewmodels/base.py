"""
View-Model Base Class

Shared plumbing for the per-feature view-models: published loading/error
state, token lookup from the user session, and the two call shapes used
by every screen:

    - loads: failures end up in ``error_message``
    - actions: failures are returned as an ``OperationResult``
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from menucraft.core.exceptions import (
    APIError,
    AUTH_REQUIRED_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    UnauthorizedError,
)
from menucraft.core.observable import ObservableState
from menucraft.services.network import NetworkService
from menucraft.session import UserSession, get_user_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """
    Outcome of a create/update/delete action.

    Attributes:
        success: Whether the action succeeded
        value: Returned record, if any
        error: Exception that made the action fail
    """
    success: bool
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: Exception) -> "OperationResult[T]":
        return cls(success=False, error=error)

    @property
    def message(self) -> Optional[str]:
        """User-facing text for a failed action."""
        if self.error is None:
            return None
        if isinstance(self.error, APIError):
            return self.error.message
        return UNEXPECTED_ERROR_MESSAGE


class BaseViewModel(ObservableState):
    """
    Base class for feature view-models.

    Attributes:
        is_loading: True while a call is in flight
        error_message: User-facing message from the last failed load
    """

    def __init__(
        self,
        session: Optional[UserSession] = None,
        network: Optional[NetworkService] = None,
    ):
        super().__init__()
        self._session = session
        self._network = network
        self.is_loading = False
        self.error_message: Optional[str] = None

    @property
    def session(self) -> UserSession:
        if self._session is None:
            self._session = get_user_session()
        return self._session

    @property
    def network(self) -> NetworkService:
        if self._network is None:
            self._network = self.session.network
        return self._network

    async def _load(
        self,
        attribute: str,
        call: Callable[[str], Awaitable[Any]],
    ) -> bool:
        """Fetch into ``attribute``; returns False and publishes the error on failure."""
        token = self.session.auth_token
        if not token:
            self._publish(error_message=AUTH_REQUIRED_MESSAGE)
            return False

        self._publish(is_loading=True, error_message=None)
        try:
            value = await call(token)
        except APIError as e:
            logger.warning(f"Loading {attribute} failed: {e.message}")
            self._publish(error_message=e.message, is_loading=False)
            return False
        except Exception:
            logger.exception(f"Unexpected error loading {attribute}")
            self._publish(error_message=UNEXPECTED_ERROR_MESSAGE, is_loading=False)
            return False

        self._publish(**{attribute: value, "is_loading": False})
        return True

    async def _perform(
        self,
        call: Callable[[str], Awaitable[T]],
        on_success: Callable[[T], dict[str, Any]],
    ) -> OperationResult[T]:
        """Run an action and apply the state changes ``on_success`` derives from its result."""
        token = self.session.auth_token
        if not token:
            return OperationResult.fail(UnauthorizedError())

        self._publish(is_loading=True)
        try:
            value = await call(token)
        except APIError as e:
            logger.warning(f"{type(self).__name__} action failed: {e.message}")
            self._publish(is_loading=False)
            return OperationResult.fail(e)
        except Exception as e:
            logger.exception(f"Unexpected error in {type(self).__name__} action")
            self._publish(is_loading=False)
            return OperationResult.fail(e)

        self._publish(**on_success(value), is_loading=False)
        return OperationResult.ok(value)
