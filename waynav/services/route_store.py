import logging
from typing import Dict, List, Optional, Sequence

from waynav.models.location import Coordinate
from waynav.models.route import SavedRoute

logger = logging.getLogger(__name__)


class RouteStore:
    """Named routes kept in memory, in save order."""

    def __init__(self) -> None:
        self._routes: Dict[str, SavedRoute] = {}
        self.selected: Optional[SavedRoute] = None

    def save(self, name: str, points: Sequence[Coordinate]) -> SavedRoute:
        route = SavedRoute(name=name, points=list(points))
        self._routes[route.id] = route
        logger.info(f"Saved route '{name}' ({len(route.points)} points) as {route.id}")
        return route

    def list(self) -> List[SavedRoute]:
        return list(self._routes.values())

    def get(self, route_id: str) -> Optional[SavedRoute]:
        return self._routes.get(route_id)

    def select(self, route_id: str) -> Optional[SavedRoute]:
        self.selected = self._routes.get(route_id)
        return self.selected

    def delete(self, route_id: str) -> bool:
        route = self._routes.pop(route_id, None)
        if route is not None and self.selected == route:
            self.selected = None
        return route is not None
