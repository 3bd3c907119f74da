import asyncio
import logging
from typing import Any, Dict, List

import googlemaps
import googlemaps.exceptions
import polyline

from waynav.core.formatters import CONTINUE_STRAIGHT, icon_hint_for, strip_html
from waynav.models.location import Coordinate
from waynav.models.route import RoutedPath, Step, StepRoute
from waynav.repositories.base import BaseRoutingRepository, NoRouteFound, RoutingServiceError

logger = logging.getLogger(__name__)

NOT_FOUND_STATUSES = frozenset({"ZERO_RESULTS", "NOT_FOUND"})


class GoogleMapsRepository(BaseRoutingRepository):
    def __init__(self, api_key: str, mode: str = "driving"):
        """Initialize Google Maps client."""
        logger.info("Initializing Google Maps client")
        self.client = googlemaps.Client(key=api_key)
        self.mode = mode

    async def _get_first_route(
        self, origin: Coordinate, destination: Coordinate, allow_highways: bool
    ) -> Dict[str, Any]:
        logger.info(
            f"Attempting to get directions from origin='{origin}' to destination='{destination}' "
            f"via mode='{self.mode}' (highways={'yes' if allow_highways else 'avoid'})"
        )
        try:
            # The client is blocking; keep it off the event loop.
            directions_result = await asyncio.to_thread(
                self.client.directions,
                origin=f"{origin.latitude},{origin.longitude}",
                destination=f"{destination.latitude},{destination.longitude}",
                mode=self.mode,
                avoid=None if allow_highways else "highways",
                alternatives=False,
            )
        except googlemaps.exceptions.ApiError as e:
            if e.status in NOT_FOUND_STATUSES:
                logger.warning(f"No route found for origin='{origin}', destination='{destination}': {e}")
                raise NoRouteFound(f"No route found between {origin} and {destination}") from e
            logger.error(f"Google Maps API error while getting directions for '{origin}' -> '{destination}': {e}", exc_info=True)
            raise RoutingServiceError(f"API error while getting directions: {e}") from e
        except (googlemaps.exceptions.TransportError, googlemaps.exceptions.Timeout) as e:
            logger.error(f"Transport error while getting directions for '{origin}' -> '{destination}': {e}", exc_info=True)
            raise RoutingServiceError(f"Transport error while getting directions: {e}") from e

        if not directions_result:
            logger.warning(f"No route found for origin='{origin}', destination='{destination}', mode='{self.mode}'")
            raise NoRouteFound(f"No route found between {origin} and {destination} using mode {self.mode}")

        return directions_result[0]

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        allow_highways: bool = True,
    ) -> RoutedPath:
        route = await self._get_first_route(origin, destination, allow_highways)
        legs = route.get("legs", [])
        return RoutedPath(
            polyline=_route_points(route),
            distance=float(sum(leg["distance"]["value"] for leg in legs)),
            duration=float(sum(leg["duration"]["value"] for leg in legs)),
        )

    async def directions(
        self,
        origin: Coordinate,
        destination: Coordinate,
        allow_highways: bool = True,
    ) -> StepRoute:
        """Get directions between two points using actual roads and routes."""
        route = await self._get_first_route(origin, destination, allow_highways)

        steps = []
        total_distance = 0.0
        total_duration = 0.0
        for leg in route.get("legs", []):
            for step in leg.get("steps", []):
                text = strip_html(step.get("html_instructions", "")) or CONTINUE_STRAIGHT
                steps.append(Step(
                    instruction_text=text,
                    icon_hint=icon_hint_for(step.get("maneuver") or text),
                    distance=float(step["distance"]["value"]),
                    polyline=_decode(step.get("polyline", {}).get("points", "")),
                ))
            total_distance += float(leg["distance"]["value"])
            total_duration += float(leg["duration"]["value"])

        final_route = StepRoute(
            distance=total_distance,
            duration=total_duration,
            steps=steps,
            polyline=_route_points(route),
            summary=route.get("summary", ""),
        )
        logger.info(
            f"Successfully found route for origin='{origin}', destination='{destination}': "
            f"{len(steps)} steps, distance={final_route.distance / 1000:.1f}km, "
            f"duration={final_route.duration / 60:.0f}min"
        )
        return final_route


def _decode(encoded: str) -> List[Coordinate]:
    if not encoded:
        return []
    return [Coordinate(latitude=lat, longitude=lng) for lat, lng in polyline.decode(encoded)]


def _route_points(route: Dict[str, Any]) -> List[Coordinate]:
    """Detailed geometry from the step polylines, overview as a fallback."""
    points: List[Coordinate] = []
    for leg in route.get("legs", []):
        for step in leg.get("steps", []):
            step_points = _decode(step.get("polyline", {}).get("points", ""))
            if points and step_points and points[-1] == step_points[0]:
                step_points = step_points[1:]
            points.extend(step_points)
    return points or _decode(route.get("overview_polyline", {}).get("points", ""))
