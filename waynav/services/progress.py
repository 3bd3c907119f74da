import logging
import math
from typing import List, NamedTuple, Optional, Sequence, Tuple

from waynav.core.formatters import CONTINUE_STRAIGHT, ICON_STRAIGHT
from waynav.geometry import Point, nearest_on_polyline, remaining_distance_on_polyline
from waynav.models.progress import ProgressState

logger = logging.getLogger(__name__)

EPSILON = 1e-9


class RouteUnit(NamedTuple):
    """A distance-bearing piece of a route: a service step or an edited segment."""
    points: List[Point]
    length: float
    instruction_text: str = CONTINUE_STRAIGHT
    icon_hint: str = ICON_STRAIGHT


class UnitMatch(NamedTuple):
    index: int
    distance: float
    remaining: float


class ProgressTracker:
    """
    Projects a live position onto a list of route units.

    Stateless between samples: every call reads the units it is given and
    returns a fresh ProgressState.

    Args:
        off_route_threshold_m: Flag the position as off-route when the nearest
            unit is farther than this. None never flags.
    """

    def __init__(self, off_route_threshold_m: Optional[float] = None) -> None:
        self.off_route_threshold_m = off_route_threshold_m

    @staticmethod
    def locate(units: Sequence[RouteUnit], point: Point) -> Optional[UnitMatch]:
        """
        Nearest unit to point.

        Ties go to the lower index, so a position sitting exactly on a shared
        vertex still belongs to the unit that has not been passed yet.
        """
        best_index = -1
        best_distance = math.inf
        for i, unit in enumerate(units):
            hit = nearest_on_polyline(unit.points, point)
            if hit is not None and hit.distance < best_distance:
                best_index, best_distance = i, hit.distance
        if best_index < 0:
            return None
        remaining = remaining_distance_on_polyline(point, units[best_index].points)
        return UnitMatch(best_index, best_distance, remaining)

    def compute(
        self,
        units: Sequence[RouteUnit],
        point: Point,
        total_distance: float,
        total_duration: float,
    ) -> ProgressState:
        """
        Progress of point along units.

        Args:
            units:          Route units in traversal order.
            point:          Live position in the units' plane.
            total_distance: Route length in meters.
            total_duration: Route duration in seconds.
        """
        match = self.locate(units, point)
        if match is None:
            return ProgressState()

        unit = units[match.index]
        passed_before = sum(u.length for u in units[:match.index])
        passed_in_unit = min(max(unit.length - match.remaining, 0.0), unit.length)
        remaining_total, fraction = self._totals(passed_before + passed_in_unit, total_distance)

        return ProgressState(
            nearest_index=match.index,
            remaining_in_current_unit=max(0.0, match.remaining),
            remaining_total_distance=remaining_total,
            remaining_total_duration=max(0.0, total_duration * remaining_total / max(total_distance, EPSILON)),
            fraction=fraction,
            active_instruction_text=unit.instruction_text,
            active_icon_hint=unit.icon_hint,
            is_off_route=self._is_off_route(match.distance),
        )

    def _is_off_route(self, distance: float) -> bool:
        if self.off_route_threshold_m is None:
            return False
        return distance > self.off_route_threshold_m

    @staticmethod
    def _totals(passed: float, total_distance: float) -> Tuple[float, float]:
        if total_distance <= 0:
            return 0.0, 0.0
        remaining = max(0.0, total_distance - passed)
        fraction = min(1.0, max(0.0, passed / max(total_distance, EPSILON)))
        return remaining, fraction
