import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp
import polyline

from waynav.core.formatters import icon_hint_for
from waynav.models.location import Coordinate
from waynav.models.route import RoutedPath, Step, StepRoute
from waynav.repositories.base import BaseRoutingRepository, NoRouteFound, RoutingServiceError

logger = logging.getLogger(__name__)

NO_ROUTE_CODES = frozenset({"NoRoute", "NoSegment"})


class OSRMRepository(BaseRoutingRepository):
    """
    OSRM /route client.

    Coordinates go out as 'lon,lat;lon,lat' and geometry comes back as an
    encoded polyline (precision 5).
    """

    def __init__(self, base_url: str, profile: str = "driving", timeout: float = 10.0):
        if not base_url:
            raise ValueError("OSRM base URL not set.")
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    def format_coordinates(coords: List[Coordinate]) -> str:
        return ";".join(f"{c.longitude},{c.latitude}" for c in coords)

    async def _make_request(
        self, origin: Coordinate, destination: Coordinate, steps: bool, allow_highways: bool
    ) -> Dict[str, Any]:
        """Call /route and return the first route object."""
        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates([origin, destination])}"
        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "true" if steps else "false",
            "alternatives": "false",
        }
        if not allow_highways:
            params["exclude"] = "motorway"

        logger.debug(f"OSRM request {origin} -> {destination} (steps={steps}, highways={allow_highways})")
        try:
            session = await self._get_session()
            async with session.get(url, params=params) as response:
                data = await response.json(content_type=None)
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"OSRM request failed for {origin} -> {destination}: {e}", exc_info=True)
            raise RoutingServiceError(f"OSRM request failed: {e}") from e

        code = (data or {}).get("code")
        if code in NO_ROUTE_CODES or (code == "Ok" and not data.get("routes")):
            logger.warning(f"OSRM found no route for {origin} -> {destination}: {code}")
            raise NoRouteFound(f"No route found between {origin} and {destination}")
        if status >= 400 or code != "Ok":
            message = (data or {}).get("message", "Unknown error")
            logger.error(f"OSRM error {status}/{code} for {origin} -> {destination}: {message}")
            raise RoutingServiceError(f"OSRM error: {message}")

        return data["routes"][0]

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        allow_highways: bool = True,
    ) -> RoutedPath:
        route = await self._make_request(origin, destination, steps=False, allow_highways=allow_highways)
        return RoutedPath(
            polyline=decode_polyline(route.get("geometry", "")),
            distance=float(route["distance"]),
            duration=float(route["duration"]),
        )

    async def directions(
        self,
        origin: Coordinate,
        destination: Coordinate,
        allow_highways: bool = True,
    ) -> StepRoute:
        route = await self._make_request(origin, destination, steps=True, allow_highways=allow_highways)
        steps = []
        for leg in route.get("legs", []):
            for step in leg.get("steps", []):
                text = maneuver_instruction(step.get("maneuver", {}), step.get("name", ""))
                steps.append(Step(
                    instruction_text=text,
                    icon_hint=icon_hint_for(text),
                    distance=float(step.get("distance", 0.0)),
                    polyline=decode_polyline(step.get("geometry", "")),
                ))

        step_route = StepRoute(
            distance=float(route["distance"]),
            duration=float(route["duration"]),
            steps=steps,
            polyline=decode_polyline(route.get("geometry", "")),
            summary=" / ".join(leg.get("summary", "") for leg in route.get("legs", []) if leg.get("summary")),
        )
        logger.info(
            f"OSRM directions {origin} -> {destination}: {len(steps)} steps, "
            f"distance={step_route.distance / 1000:.1f}km, duration={step_route.duration / 60:.0f}min"
        )
        return step_route


def decode_polyline(encoded: str) -> List[Coordinate]:
    if not encoded:
        return []
    return [Coordinate(latitude=lat, longitude=lon) for lat, lon in polyline.decode(encoded)]


def maneuver_instruction(maneuver: Dict[str, Any], road_name: str = "") -> str:
    """Plain-English instruction for an OSRM maneuver object."""
    kind = maneuver.get("type", "")
    modifier = maneuver.get("modifier", "")
    onto = f" onto {road_name}" if road_name else ""

    if kind == "depart":
        return f"Head out{onto}"
    if kind == "arrive":
        return "Arrive at destination"
    if kind in ("roundabout", "rotary"):
        exit_number = maneuver.get("exit")
        return f"At the roundabout take exit {exit_number}{onto}" if exit_number else f"Enter the roundabout{onto}"
    if modifier in ("straight", ""):
        return f"Continue straight{onto}"
    if modifier == "uturn":
        return f"Make a U-turn{onto}"
    if kind in ("merge", "fork", "on ramp", "off ramp"):
        return f"{kind.capitalize()} {modifier}{onto}"
    return f"Turn {modifier}{onto}"
