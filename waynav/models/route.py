from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from waynav.models.location import Coordinate


class RoutedPath(BaseModel):
    """What the routing collaborator returns for a single origin/destination pair."""
    polyline: List[Coordinate] = Field(..., description="Road-snapped geometry")
    distance: float = Field(..., description="Distance in meters")
    duration: Optional[float] = Field(None, description="Duration in seconds")


class Segment(BaseModel):
    """Routed polyline between two consecutive waypoints."""
    start: Coordinate
    end: Coordinate
    polyline: List[Coordinate]
    distance: float = Field(..., description="Distance in meters")
    duration: Optional[float] = Field(None, description="Duration in seconds")

    class Config:
        frozen = True

    @classmethod
    def from_routed(cls, start: Coordinate, end: Coordinate, routed: RoutedPath) -> "Segment":
        return cls(
            start=start,
            end=end,
            polyline=list(routed.polyline) or [start, end],
            distance=routed.distance,
            duration=routed.duration,
        )


class Step(BaseModel):
    """A maneuver from a directions service."""
    instruction_text: str = ""
    icon_hint: str = Field("", description="Maneuver icon; derived from the instruction when empty")
    distance: float = Field(..., description="Distance in meters")
    polyline: List[Coordinate] = Field(default_factory=list)


class StepRoute(BaseModel):
    """Single route from a directions service, with its turn list."""
    distance: float = Field(..., description="Total distance in meters")
    duration: float = Field(..., description="Total duration in seconds")
    steps: List[Step] = Field(default_factory=list)
    polyline: List[Coordinate] = Field(default_factory=list)
    summary: str = ""


class SegmentChain(BaseModel):
    """A continuous chain of segments committed from an edit session."""
    segments: List[Segment] = Field(default_factory=list)
    total_distance: float = 0.0
    total_duration: Optional[float] = Field(
        None, description="Seconds; None when any segment lacks a duration estimate"
    )

    @classmethod
    def from_segments(cls, segments: List[Segment]) -> "SegmentChain":
        durations = [s.duration for s in segments]
        total_duration = None
        if segments and all(d is not None for d in durations):
            total_duration = float(sum(durations))
        return cls(
            segments=list(segments),
            total_distance=float(sum(s.distance for s in segments)),
            total_duration=total_duration,
        )


class SavedRoute(BaseModel):
    """Named route kept by the RouteStore. Equal only to itself (by id)."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    points: List[Coordinate] = Field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SavedRoute) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)
