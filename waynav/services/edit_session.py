import asyncio
import logging
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Sequence, Set

from waynav.geometry import Point, Viewport, nearest_on_polyline
from waynav.models.location import Coordinate
from waynav.models.progress import PathSnapshot
from waynav.models.route import Segment, SegmentChain, StepRoute
from waynav.repositories.base import BaseRoutingRepository, RoutingError
from waynav.services.path_model import PathModel

logger = logging.getLogger(__name__)

DEFAULT_INSERT_TOLERANCE_PX = 24.0

PathListener = Callable[[PathSnapshot], None]


class EditMode(str, Enum):
    CREATE_NEW = "create_new"
    EDIT_EXISTING = "edit_existing"


class SlotRequest(NamedTuple):
    """A segment recomputation as it looked at dispatch time."""
    generation: int
    index: int
    start_id: str
    start: Coordinate
    end_id: str
    end: Coordinate


class EditSession:
    """
    Turns edit gestures into minimal PathModel mutations.

    Structural changes and coordinate updates land immediately; the segments
    they invalidate are re-routed in background tasks. A routed result is only
    written back if both endpoint waypoints still carry the ids and coordinates
    it was requested for, and the path has not been reset since. Anything else
    is dropped without retry.

    Usage:
        session = EditSession(router)
        await session.handle_tap_add(a)
        await session.handle_tap_add(b)
        session.move_waypoint(1, b2)
        await session.settle()
    """

    def __init__(
        self,
        router: BaseRoutingRepository,
        allow_highways: bool = True,
        insert_tolerance_px: float = DEFAULT_INSERT_TOLERANCE_PX,
        mode: EditMode = EditMode.CREATE_NEW,
    ) -> None:
        self.router = router
        self.allow_highways = allow_highways
        self.insert_tolerance_px = insert_tolerance_px
        self.mode = mode
        self.model = PathModel()
        self._pending: Set[asyncio.Task] = set()
        self._listeners: List[PathListener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: PathListener) -> Callable[[], None]:
        """Call listener with a fresh snapshot after every mutation."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> PathSnapshot:
        return self.model.snapshot()

    def unrouted_indices(self) -> List[int]:
        return self.model.gaps

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _emit(self) -> PathSnapshot:
        snapshot = self.model.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> PathSnapshot:
        """Clear the path. Results still in flight will find a newer generation and be dropped."""
        self.model.reset()
        logger.info(f"Edit session reset ({len(self._pending)} recomputations in flight will be discarded)")
        return self._emit()

    def seed(self, coordinates: Sequence[Coordinate]) -> PathSnapshot:
        """Load existing points for editing and route every pair in the background."""
        self.mode = EditMode.EDIT_EXISTING
        for index in self.model.seed(coordinates):
            self._schedule(index)
        return self._emit()

    def seed_from_route(self, route: StepRoute, current_position: Optional[Coordinate] = None) -> PathSnapshot:
        """
        Start editing a service route: two points, the route geometry as the one segment.

        The first point is the live position when known, otherwise the route start.
        When that position is off the route start the slot starts as a gap and
        is routed afresh.
        """
        self.mode = EditMode.EDIT_EXISTING
        if not route.polyline:
            self.model.reset()
            return self._emit()

        route_start = route.polyline[0]
        end = route.polyline[-1]
        if current_position is not None and current_position != route_start:
            for index in self.model.seed([current_position, end]):
                self._schedule(index)
            return self._emit()

        segment = Segment(
            start=route_start, end=end, polyline=list(route.polyline),
            distance=route.distance, duration=route.duration,
        )
        self.model.seed([route_start, end], [segment])
        return self._emit()

    async def settle(self) -> None:
        """Wait until every in-flight recomputation has been applied or dropped."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    async def handle_tap_add(self, coord: Coordinate) -> PathSnapshot:
        """
        Append a point at the end of the path.

        The first point has no segment. Later points are routed from the
        current last point; the waypoint and its segment are appended together,
        or the waypoint alone (a gap) when routing fails.
        """
        model = self.model
        last = model.waypoint(len(model) - 1)
        if last is None:
            model.append_waypoint(coord)
            return self._emit()

        generation = model.generation
        segment = None
        try:
            routed = await self.router.route(last.coordinate, coord, self.allow_highways)
            segment = Segment.from_routed(last.coordinate, coord, routed)
        except RoutingError as e:
            logger.warning(f"No segment for appended point {coord}: {e}")

        if model.generation != generation:
            logger.debug(f"Dropping tap-add result for {coord}: path was reset")
            return model.snapshot()

        current_last = model.waypoint(len(model) - 1)
        if current_last is None:
            model.append_waypoint(coord)
            return self._emit()

        if current_last.id != last.id or current_last.coordinate != last.coordinate:
            # The tail moved while routing; keep the point, route the new pair.
            model.append_waypoint(coord)
            self._schedule(len(model) - 2)
            return self._emit()

        model.append_waypoint(coord, segment)
        return self._emit()

    def try_insert_on_path(
        self,
        tap_point: Point,
        viewport: Viewport,
        tolerance: Optional[float] = None,
    ) -> bool:
        """
        Insert a point on the routed segment nearest to a screen tap.

        Distances are measured in screen space so the tolerance is a finger
        radius, not a ground distance. Slots awaiting a reroute still hold
        geometry for endpoints that no longer exist and are not hit-tested.

        Returns:
            True if a waypoint was inserted.
        """
        tolerance = self.insert_tolerance_px if tolerance is None else tolerance
        best_hit = None
        best_slot = -1
        stale = set(self.model.stale)
        for i, segment in enumerate(self.model.segments):
            if segment is None or i in stale:
                continue
            hit = nearest_on_polyline([viewport.to_screen(c) for c in segment.polyline], tap_point)
            if hit is not None and (best_hit is None or hit.distance < best_hit.distance):
                best_hit, best_slot = hit, i

        if best_hit is None or best_hit.distance > tolerance:
            return False

        insert_index = min(best_slot + 1, len(self.model))
        coord = viewport.to_coordinate(best_hit.point)
        for index in self.model.insert_waypoint(insert_index, coord):
            self._schedule(index)
        logger.info(f"Inserted waypoint {insert_index} at {coord} on segment {best_slot}")
        self._emit()
        return True

    def move_waypoint(self, index: int, coord: Coordinate) -> PathSnapshot:
        """Move a waypoint now; re-route its (at most two) adjacent segments in the background."""
        for slot in self.model.move_waypoint(index, coord):
            self._schedule(slot)
        return self._emit()

    def remove_waypoint(self, index: int) -> PathSnapshot:
        for slot in self.model.remove_waypoint(index):
            self._schedule(slot)
        return self._emit()

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    async def materialize_for_navigation(self, current_position: Optional[Coordinate] = None) -> SegmentChain:
        """
        Build one continuous chain from the live position through every waypoint.

        A leading segment is routed from current_position to the first
        waypoint when they differ, and each gap gets one more routing attempt.
        Gaps that still fail are left out of the chain.
        """
        await self.settle()
        model = self.model
        coordinates = model.coordinates
        segments: List[Segment] = []
        if not coordinates:
            return SegmentChain()

        if current_position is not None and current_position != coordinates[0]:
            try:
                routed = await self.router.route(current_position, coordinates[0], self.allow_highways)
                segments.append(Segment.from_routed(current_position, coordinates[0], routed))
            except RoutingError as e:
                logger.warning(f"Leading segment from {current_position} unavailable: {e}")

        stale = set(model.stale)
        for i in range(len(model.segments)):
            if model.segments[i] is None or i in stale:
                await self._recompute(self._request_for(i))
            slot = model.segments[i]
            if slot is None:
                logger.warning(f"Segment {i} is still unrouted; navigation chain has a gap")
                continue
            segments.append(slot)

        chain = SegmentChain.from_segments(segments)
        logger.info(
            f"Materialized {len(chain.segments)} segments for navigation: "
            f"distance={chain.total_distance / 1000:.1f}km"
        )
        return chain

    # ------------------------------------------------------------------
    # Recomputation
    # ------------------------------------------------------------------

    def _request_for(self, index: int) -> SlotRequest:
        start = self.model.waypoint(index)
        end = self.model.waypoint(index + 1)
        return SlotRequest(
            generation=self.model.generation,
            index=index,
            start_id=start.id,
            start=start.coordinate,
            end_id=end.id,
            end=end.coordinate,
        )

    def _schedule(self, index: int) -> None:
        request = self._request_for(index)
        task = asyncio.get_running_loop().create_task(self._recompute(request))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _current_slot(self, request: SlotRequest) -> Optional[int]:
        """Where the requested pair lives now, or None if it no longer exists as requested."""
        if request.generation != self.model.generation:
            return None
        waypoints = self.model.waypoints
        for i in range(len(waypoints) - 1):
            if waypoints[i].id == request.start_id:
                start, end = waypoints[i], waypoints[i + 1]
                if end.id == request.end_id and start.coordinate == request.start and end.coordinate == request.end:
                    return i
                return None
        return None

    async def _recompute(self, request: SlotRequest) -> bool:
        segment = None
        try:
            routed = await self.router.route(request.start, request.end, self.allow_highways)
            segment = Segment.from_routed(request.start, request.end, routed)
        except RoutingError as e:
            logger.warning(f"Routing failed for segment {request.index} ({request.start} -> {request.end}): {e}")

        slot = self._current_slot(request)
        if slot is None:
            logger.debug(f"Discarding stale result for segment {request.index}")
            return False

        self.model.set_segment(slot, segment)
        self._emit()
        return True
