from uuid import uuid4

from pydantic import BaseModel, Field


class Coordinate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    class Config:
        frozen = True

    def __str__(self) -> str:
        return f"({self.latitude:.6f},{self.longitude:.6f})"


class Waypoint(BaseModel):
    """A user-placed point; identity is the synthetic id, never the coordinate."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    coordinate: Coordinate

    class Config:
        frozen = True
