import asyncio
from typing import Dict, List, Optional, Set, Tuple

import pytest

from waynav.geometry import haversine_distance
from waynav.models.location import Coordinate
from waynav.models.route import RoutedPath, StepRoute
from waynav.repositories.base import BaseRoutingRepository, NoRouteFound


def coord(lat: float, lon: float) -> Coordinate:
    return Coordinate(latitude=lat, longitude=lon)


class FakeRouter(BaseRoutingRepository):
    """
    Straight-line router with knobs for failures and held requests.

    Requests touching a held coordinate wait until its event is set.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[Coordinate, Coordinate]] = []
        self.highway_flags: List[bool] = []
        self.fail_all = False
        self.fail_pairs: Set[Tuple[Coordinate, Coordinate]] = set()
        self.fail_once: Set[Tuple[Coordinate, Coordinate]] = set()
        self.held: Dict[Coordinate, asyncio.Event] = {}
        self.directions_result: Optional[StepRoute] = None

    def hold(self, c: Coordinate) -> asyncio.Event:
        event = asyncio.Event()
        self.held[c] = event
        return event

    async def route(self, origin, destination, allow_highways=True):
        self.calls.append((origin, destination))
        self.highway_flags.append(allow_highways)
        for c in (origin, destination):
            if c in self.held:
                await self.held[c].wait()
        pair = (origin, destination)
        if pair in self.fail_once:
            self.fail_once.discard(pair)
            raise NoRouteFound(f"no route {origin} -> {destination}")
        if self.fail_all or pair in self.fail_pairs:
            raise NoRouteFound(f"no route {origin} -> {destination}")
        d = haversine_distance(origin.latitude, origin.longitude, destination.latitude, destination.longitude)
        return RoutedPath(polyline=[origin, destination], distance=d, duration=d / 10.0)

    async def directions(self, origin, destination, allow_highways=True):
        self.calls.append((origin, destination))
        self.highway_flags.append(allow_highways)
        if self.directions_result is None:
            raise NoRouteFound("no directions configured")
        return self.directions_result


async def drain(rounds: int = 10) -> None:
    """Let ready tasks run without waiting on held ones."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def router():
    return FakeRouter()


# Three points along the equator, ~1.1 km apart
@pytest.fixture
def abc():
    return coord(0.0, 0.0), coord(0.0, 0.01), coord(0.0, 0.02)
