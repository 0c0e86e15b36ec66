"""
Published state for session and view-model objects.

Front ends subscribe to an object and are called back with the names and
new values of the attributes that changed.
"""

from typing import Any, Callable

Subscriber = Callable[[Any, dict[str, Any]], None]


class ObservableState:
    """Base for objects whose public attributes are observed by a UI."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a change callback.

        Args:
            callback: Called as ``callback(obj, changes)`` after every update

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, **changes: Any) -> None:
        """Apply attribute changes, then notify subscribers once."""
        for name, value in changes.items():
            setattr(self, name, value)
        for callback in list(self._subscribers):
            callback(self, changes)
