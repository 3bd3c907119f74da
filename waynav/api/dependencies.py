from functools import lru_cache
from typing import Dict, Optional, Tuple
from uuid import uuid4

from waynav.core.settings import Settings, get_settings
from waynav.repositories.base import BaseRoutingRepository
from waynav.repositories.routing import create_routing_repository
from waynav.services.edit_session import EditSession
from waynav.services.navigation import NavigationSession
from waynav.services.route_store import RouteStore


class EditSessionRegistry:
    """Open edit sessions by id."""

    def __init__(self, router: BaseRoutingRepository, settings: Settings) -> None:
        self.router = router
        self.settings = settings
        self._sessions: Dict[str, EditSession] = {}

    def create(self, allow_highways: Optional[bool] = None) -> Tuple[str, EditSession]:
        session_id = uuid4().hex
        if allow_highways is None:
            allow_highways = self.settings.ALLOW_HIGHWAYS
        session = EditSession(
            self.router,
            allow_highways=allow_highways,
            insert_tolerance_px=self.settings.INSERT_TOLERANCE_PX,
        )
        self._sessions[session_id] = session
        return session_id, session

    def get(self, session_id: str) -> Optional[EditSession]:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.reset()


@lru_cache()
def get_routing_repository() -> BaseRoutingRepository:
    """Get the configured routing repository instance."""
    return create_routing_repository(get_settings())


@lru_cache()
def get_route_store() -> RouteStore:
    return RouteStore()


@lru_cache()
def get_edit_sessions() -> EditSessionRegistry:
    return EditSessionRegistry(get_routing_repository(), get_settings())


@lru_cache()
def get_navigation_session() -> NavigationSession:
    settings = get_settings()
    return NavigationSession(
        get_routing_repository(),
        nominal_speed_mps=settings.NOMINAL_SPEED_MPS,
        off_route_threshold_m=settings.OFF_ROUTE_THRESHOLD_M,
        allow_highways=settings.ALLOW_HIGHWAYS,
    )
