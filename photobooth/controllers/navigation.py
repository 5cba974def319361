"""Route flow between the config, capture and result stages."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from ..store import PhotoboothStore

LOGGER = logging.getLogger(__name__)


class Route(str, Enum):
    CONFIG = "config"
    CAPTURE = "capture"
    RESULT = "result"


RouteListener = Callable[[Optional[Route], Route], None]

_GUARDED_ROUTES = frozenset({Route.CAPTURE, Route.RESULT})


class Navigator:
    """Track the current route and notify listeners on every change.

    The capture and result routes require an active session; requests for
    them without one are redirected to the config route.  Unknown route
    names also land on the config route.
    """

    def __init__(self, store: PhotoboothStore) -> None:
        self._store = store
        self._current: Optional[Route] = None
        self._listeners: List[RouteListener] = []

    @property
    def current(self) -> Optional[Route]:
        return self._current

    def add_listener(self, listener: RouteListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: RouteListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def resolve(self, route: "Route | str") -> Route:
        try:
            target = Route(route)
        except ValueError:
            LOGGER.warning("Unknown route %r, redirecting to config", route)
            return Route.CONFIG
        if target in _GUARDED_ROUTES and not self._store.has_active_session():
            LOGGER.info("No active session, redirecting %s to config", target.value)
            return Route.CONFIG
        return target

    def navigate(self, route: "Route | str") -> Route:
        target = self.resolve(route)
        previous, self._current = self._current, target
        LOGGER.info(
            "Navigate %s -> %s", previous.value if previous else None, target.value
        )
        for listener in list(self._listeners):
            listener(previous, target)
        return target


__all__ = ["Navigator", "Route", "RouteListener"]
