"""
User Session

Holds the auth token and current user, persists them to the session file
and reloads them at start-up. Only login, register and logout mutate the
session; concurrent writers simply overwrite each other (last write wins)
under a file lock.

Usage:
    from menucraft.session import get_user_session

    session = get_user_session()
    await session.login("demo@menucraft.dev", "password")
    if session.is_logged_in:
        print(session.full_name)
"""

import json
import logging
from functools import lru_cache
from typing import Optional

from filelock import FileLock
from pydantic import ValidationError

from menucraft.core.config import Settings, get_settings
from menucraft.core.exceptions import APIError, UNEXPECTED_ERROR_MESSAGE
from menucraft.core.observable import ObservableState
from menucraft.schemas import UserResponse
from menucraft.services.network import NetworkService, get_network_service

logger = logging.getLogger(__name__)


class UserSession(ObservableState):
    """
    Authentication state shared by every view-model.

    Attributes:
        is_logged_in: True once a token and a user are known
        user: Current user, if any
        auth_token: Token sent with every authenticated request
        is_loading: True while login/register is in flight
        error: User-facing message from the last failed login/register
    """

    TOKEN_KEY = "authToken"
    USER_KEY = "userData"

    def __init__(
        self,
        network: Optional[NetworkService] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__()
        self.settings = settings or get_settings()
        self._network = network

        self.is_logged_in = False
        self.user: Optional[UserResponse] = None
        self.auth_token: Optional[str] = None
        self.is_loading = False
        self.error: Optional[str] = None

        self._load_saved_session()

    @property
    def network(self) -> NetworkService:
        if self._network is None:
            self._network = get_network_service()
        return self._network

    def _lock(self) -> FileLock:
        return FileLock(str(self.settings.session_lock_path), timeout=self.settings.session_lock_timeout)

    # ==========================================================================
    # PERSISTENCE
    # ==========================================================================

    def _load_saved_session(self) -> None:
        path = self.settings.session_path
        if not path.exists():
            return

        try:
            with self._lock():
                data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read saved session {path}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Saved session {path} is not a JSON object, ignoring it")
            return

        token = data.get(self.TOKEN_KEY)
        if not token:
            return
        self.auth_token = token

        user_data = data.get(self.USER_KEY)
        if user_data is None:
            return
        try:
            self.user = UserResponse.model_validate(user_data)
        except ValidationError as e:
            logger.warning(f"Saved user record is invalid: {e}")
            return
        self.is_logged_in = True
        logger.debug(f"Session restored for {self.user.email}")

    def save_session(self, token: str, user: UserResponse) -> None:
        """Persist the session, then publish it."""
        path = self.settings.session_path
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {self.TOKEN_KEY: token, self.USER_KEY: user.model_dump(mode="json")}
        with self._lock():
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")

        logger.info(f"Session saved for {user.email}")
        self._publish(auth_token=token, user=user, is_logged_in=True)

    def clear_session(self) -> None:
        path = self.settings.session_path
        with self._lock():
            if path.exists():
                path.unlink()

        logger.info("Session cleared")
        self._publish(auth_token=None, user=None, is_logged_in=False)

    # ==========================================================================
    # AUTHENTICATION
    # ==========================================================================

    async def login(self, email: str, password: str) -> bool:
        """
        Log in and persist the session.

        Failures are not raised; they are published through ``error``.

        Returns:
            True on success
        """
        self._publish(is_loading=True, error=None)
        try:
            response = await self.network.login(email, password)
            self.save_session(response.token, response.user)
            return True
        except APIError as e:
            logger.warning(f"Login failed: {e.message}")
            self._publish(error=e.message)
        except Exception:
            logger.exception("Unexpected error during login")
            self._publish(error=UNEXPECTED_ERROR_MESSAGE)
        finally:
            self._publish(is_loading=False)
        return False

    async def register(self, first_name: str, last_name: str, email: str, password: str) -> bool:
        """Create an owner account and log it in. Same error contract as login."""
        self._publish(is_loading=True, error=None)
        try:
            response = await self.network.register(
                first_name=first_name,
                last_name=last_name,
                email=email,
                password=password,
            )
            self.save_session(response.token, response.user)
            return True
        except APIError as e:
            logger.warning(f"Registration failed: {e.message}")
            self._publish(error=e.message)
        except Exception:
            logger.exception("Unexpected error during registration")
            self._publish(error=UNEXPECTED_ERROR_MESSAGE)
        finally:
            self._publish(is_loading=False)
        return False

    def logout(self) -> None:
        self.clear_session()

    # ==========================================================================
    # CONVENIENCE
    # ==========================================================================

    @property
    def full_name(self) -> str:
        return self.user.full_name if self.user else ""

    @property
    def is_owner(self) -> bool:
        return self.user is not None and self.user.role == "owner"

    @property
    def is_manager(self) -> bool:
        return self.user is not None and self.user.role == "manager"

    @property
    def has_restaurant(self) -> bool:
        return self.user is not None and self.user.restaurant_id is not None


@lru_cache()
def get_user_session() -> UserSession:
    """Get the shared session, loading the saved one on first use."""
    return UserSession()


def reset_user_session() -> None:
    get_user_session.cache_clear()
