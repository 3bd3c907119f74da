from abc import ABC, abstractmethod
from typing import List, Optional

from waynav.core.formatters import CONTINUE_STRAIGHT, ICON_STRAIGHT, icon_hint_for
from waynav.geometry import LocalProjection, polyline_length
from waynav.models.location import Coordinate
from waynav.models.progress import ProgressState, StepInfo
from waynav.models.route import SegmentChain, StepRoute
from waynav.services.progress import ProgressTracker, RouteUnit

DEFAULT_NOMINAL_SPEED_MPS = 12.5


class RouteSource(ABC):
    """
    Uniform query surface over a service route and an edited segment chain.

    Geometry is projected once at construction with a projection anchored on
    the first route coordinate; every later sample goes through the same one.
    """

    def __init__(self, units_coordinates: List[List[Coordinate]], tracker: Optional[ProgressTracker] = None) -> None:
        first = next((c for coords in units_coordinates for c in coords[:1]), None)
        self.projection = LocalProjection(first.latitude if first else 0.0)
        self.tracker = tracker or ProgressTracker()

    @property
    @abstractmethod
    def units(self) -> List[RouteUnit]:
        pass

    @abstractmethod
    def total_distance(self) -> float:
        pass

    @abstractmethod
    def total_duration(self) -> float:
        pass

    def step_at(self, position: Coordinate) -> StepInfo:
        match = self.tracker.locate(self.units, self.projection.to_point(position))
        if match is None:
            return StepInfo(instruction_text=CONTINUE_STRAIGHT, icon_hint=ICON_STRAIGHT, distance_to_maneuver=0.0)
        unit = self.units[match.index]
        return StepInfo(
            instruction_text=unit.instruction_text,
            icon_hint=unit.icon_hint,
            distance_to_maneuver=max(0.0, match.remaining),
        )

    def progress_at(self, position: Coordinate) -> ProgressState:
        return self.tracker.compute(
            self.units,
            self.projection.to_point(position),
            self.total_distance(),
            self.total_duration(),
        )


class StepRouteSource(RouteSource):
    """Service route: units are its steps, lengths are the service's step distances."""

    def __init__(self, route: StepRoute, tracker: Optional[ProgressTracker] = None) -> None:
        super().__init__([s.polyline for s in route.steps] + [route.polyline], tracker)
        self.route = route
        self._units = [
            RouteUnit(
                points=self.projection.project_polyline(step.polyline),
                length=step.distance,
                instruction_text=step.instruction_text or CONTINUE_STRAIGHT,
                icon_hint=step.icon_hint or icon_hint_for(step.instruction_text),
            )
            for step in route.steps
        ]

    @property
    def units(self) -> List[RouteUnit]:
        return self._units

    def total_distance(self) -> float:
        return self.route.distance

    def total_duration(self) -> float:
        return self.route.duration


class SegmentChainSource(RouteSource):
    """
    Edited path: units are its segments, measured on the projected plane.

    Without a router duration for every segment, time comes from a nominal
    speed.
    """

    def __init__(
        self,
        chain: SegmentChain,
        nominal_speed_mps: float = DEFAULT_NOMINAL_SPEED_MPS,
        tracker: Optional[ProgressTracker] = None,
    ) -> None:
        super().__init__([s.polyline for s in chain.segments], tracker)
        if nominal_speed_mps <= 0:
            raise ValueError("nominal_speed_mps must be positive")
        self.chain = chain
        self.nominal_speed_mps = nominal_speed_mps
        self._units = []
        for segment in chain.segments:
            points = self.projection.project_polyline(segment.polyline)
            self._units.append(RouteUnit(points=points, length=polyline_length(points)))
        self._total_distance = sum(u.length for u in self._units)

    @property
    def units(self) -> List[RouteUnit]:
        return self._units

    def total_distance(self) -> float:
        return self._total_distance

    def total_duration(self) -> float:
        if self.chain.total_duration is not None:
            return self.chain.total_duration
        return self._total_distance / self.nominal_speed_mps
