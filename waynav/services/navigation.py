import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from waynav.core.formatters import DEPART, ICON_STRAIGHT, fmt_distance, fmt_duration
from waynav.models.location import Coordinate
from waynav.models.progress import HudUpdate, ProgressState, StepInfo
from waynav.models.route import SegmentChain, StepRoute
from waynav.repositories.base import BaseRoutingRepository
from waynav.services.edit_session import EditSession
from waynav.services.progress import ProgressTracker
from waynav.services.route_source import (
    DEFAULT_NOMINAL_SPEED_MPS,
    RouteSource,
    SegmentChainSource,
    StepRouteSource,
)

logger = logging.getLogger(__name__)

HudListener = Callable[[HudUpdate], None]


class NavigationSession:
    """
    Owns the active route and turns location samples into HUD updates.

    Typical lifecycle:
        nav = NavigationSession(router)
        await nav.start_with_directions(origin, destination)

        # Location loop:
        update = nav.update(position)

    Args:
        router:                Directions service for service routes.
        nominal_speed_mps:     Speed used to time edited paths.
        off_route_threshold_m: Off-route distance; None disables the flag.
        allow_highways:        Passed through to the router.
    """

    def __init__(
        self,
        router: BaseRoutingRepository,
        nominal_speed_mps: float = DEFAULT_NOMINAL_SPEED_MPS,
        off_route_threshold_m: Optional[float] = None,
        allow_highways: bool = True,
    ) -> None:
        self.router = router
        self.nominal_speed_mps = nominal_speed_mps
        self.allow_highways = allow_highways
        self.tracker = ProgressTracker(off_route_threshold_m)
        self.source: Optional[RouteSource] = None
        self.last_update: Optional[HudUpdate] = None
        self._listeners: List[HudListener] = []

    @property
    def is_navigating(self) -> bool:
        return self.source is not None

    def subscribe(self, listener: HudListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    async def start_with_directions(
        self, origin: Coordinate, destination: Coordinate, allow_highways: Optional[bool] = None
    ) -> HudUpdate:
        """
        Fetch a service route (RoutingError propagates) and start on it.

        allow_highways overrides the session default for this request.
        """
        if allow_highways is None:
            allow_highways = self.allow_highways
        logger.info(f"Requesting directions: {origin} -> {destination} (highways={allow_highways})")
        route = await self.router.directions(origin, destination, allow_highways)
        return self.start_with_route(route)

    def start_with_route(self, route: StepRoute) -> HudUpdate:
        self.source = StepRouteSource(route, self.tracker)
        first = route.steps[0] if route.steps else None
        instruction = first.instruction_text if first and first.instruction_text else DEPART
        icon = self.source.units[0].icon_hint if self.source.units else ICON_STRAIGHT
        logger.info(f"Navigation started on service route: {len(route.steps)} steps, {route.distance:.0f} m")
        return self._start_update(first.distance if first else route.distance, instruction, icon)

    async def start_with_edit_session(
        self, edit_session: EditSession, current_position: Optional[Coordinate] = None
    ) -> HudUpdate:
        chain = await edit_session.materialize_for_navigation(current_position)
        return self.start_with_chain(chain)

    def start_with_chain(self, chain: SegmentChain) -> HudUpdate:
        self.source = SegmentChainSource(chain, self.nominal_speed_mps, self.tracker)
        logger.info(f"Navigation started on edited path: {len(chain.segments)} segments")
        return self._start_update(self.source.total_distance(), DEPART, ICON_STRAIGHT)

    def stop(self) -> None:
        self.source = None
        self.last_update = None
        logger.info("Navigation stopped.")

    # ------------------------------------------------------------------
    # Location update, called on every sample
    # ------------------------------------------------------------------

    def update(self, position: Coordinate) -> Optional[HudUpdate]:
        """Progress for one location sample; None when not navigating."""
        if self.source is None:
            return None
        progress = self.source.progress_at(position)
        step = StepInfo(
            instruction_text=progress.active_instruction_text,
            icon_hint=progress.active_icon_hint,
            distance_to_maneuver=progress.remaining_in_current_unit,
        )
        if progress.is_off_route:
            logger.info(f"Position {position} is off route")
        return self._publish(progress, step)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start_update(self, next_distance: float, instruction: str, icon: str) -> HudUpdate:
        progress = ProgressState(
            nearest_index=0,
            remaining_in_current_unit=next_distance,
            remaining_total_distance=self.source.total_distance(),
            remaining_total_duration=self.source.total_duration(),
            fraction=0.0,
            active_instruction_text=instruction,
            active_icon_hint=icon,
        )
        step = StepInfo(instruction_text=instruction, icon_hint=icon, distance_to_maneuver=next_distance)
        return self._publish(progress, step)

    def _publish(self, progress: ProgressState, step: StepInfo) -> HudUpdate:
        update = HudUpdate(
            progress=progress,
            step=step,
            next_distance_text=fmt_distance(step.distance_to_maneuver),
            remaining_text=(
                f"{fmt_duration(progress.remaining_total_duration)} · "
                f"{fmt_distance(progress.remaining_total_distance)}"
            ),
            eta=datetime.now() + timedelta(seconds=progress.remaining_total_duration),
        )
        self.last_update = update
        for listener in list(self._listeners):
            listener(update)
        return update
