from abc import ABC, abstractmethod

from waynav.models.location import Coordinate
from waynav.models.route import RoutedPath, StepRoute


# Custom Exception Hierarchy
class RoutingError(Exception):
    """Base class for routing collaborator errors."""
    pass


class NoRouteFound(RoutingError):
    """The service could not connect the two points."""
    pass


class RoutingServiceError(RoutingError):
    """Transport or API failure while talking to the service."""
    pass


class BaseRoutingRepository(ABC):
    """Base class for directions services. Implementations never retry."""

    @abstractmethod
    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        allow_highways: bool = True,
    ) -> RoutedPath:
        """Road-snapped path between two points."""
        pass

    @abstractmethod
    async def directions(
        self,
        origin: Coordinate,
        destination: Coordinate,
        allow_highways: bool = True,
    ) -> StepRoute:
        """Route between two points with its maneuver list."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        pass
