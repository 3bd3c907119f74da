from typing import List, Optional

from pydantic import BaseModel, Field

from waynav.models.location import Coordinate
from waynav.models.progress import PathSnapshot


class CreateEditSessionRequest(BaseModel):
    points: List[Coordinate] = Field(default_factory=list, description="Existing points to edit")
    saved_route_id: Optional[str] = Field(None, description="Seed from a saved route instead of points")
    allow_highways: Optional[bool] = Field(None, description="Route on highways; server default when omitted")


class EditSessionResponse(BaseModel):
    session_id: str
    mode: str
    path: PathSnapshot
    unrouted: List[int] = Field(default_factory=list, description="Segment slots without geometry")


class InsertRequest(BaseModel):
    """A tap in screen space on a north-up map of fixed scale."""
    x: float
    y: float
    origin: Coordinate = Field(..., description="Coordinate at the screen's top-left corner")
    metres_per_pixel: float = Field(..., gt=0)
    tolerance_px: Optional[float] = Field(None, gt=0)


class InsertResponse(EditSessionResponse):
    inserted: bool


class SaveRouteRequest(BaseModel):
    name: str = Field(..., min_length=1)


class StartNavigationRequest(BaseModel):
    session_id: Optional[str] = Field(None, description="Navigate an edited path")
    origin: Optional[Coordinate] = Field(None, description="Directions origin when no session is given")
    destination: Optional[Coordinate] = None
    current_position: Optional[Coordinate] = None
    allow_highways: Optional[bool] = Field(None, description="Route on highways; server default when omitted")
