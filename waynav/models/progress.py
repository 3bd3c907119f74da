from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from waynav.models.location import Coordinate, Waypoint
from waynav.models.route import Segment


class StepInfo(BaseModel):
    instruction_text: str
    icon_hint: str
    distance_to_maneuver: float = Field(..., description="Meters to the end of the current unit")


class ProgressState(BaseModel):
    """Progress of a live position along the active route. Recomputed per sample."""
    nearest_index: int = 0
    remaining_in_current_unit: float = 0.0
    remaining_total_distance: float = 0.0
    remaining_total_duration: float = 0.0
    fraction: float = Field(0.0, ge=0, le=1)
    active_instruction_text: str = ""
    active_icon_hint: str = "straight"
    is_off_route: bool = False


class HudUpdate(BaseModel):
    """Everything the HUD shows for one location sample."""
    progress: ProgressState
    step: StepInfo
    next_distance_text: str
    remaining_text: str
    eta: datetime


class PathSnapshot(BaseModel):
    """Immutable view of a path after a mutation."""
    waypoints: List[Waypoint] = Field(default_factory=list)
    segments: List[Optional[Segment]] = Field(
        default_factory=list, description="One slot per waypoint pair; None marks a gap"
    )
    gaps: List[int] = Field(default_factory=list)
    stale: List[int] = Field(default_factory=list)
    generation: int = 0

    @property
    def coordinates(self) -> List[Coordinate]:
        return [w.coordinate for w in self.waypoints]
