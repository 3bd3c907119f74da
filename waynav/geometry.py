# Pure point / segment / polyline math.
# Distances are planar; geographic coordinates are brought into the plane
# through one LocalProjection per route so every length shares one metric.

import math
from typing import List, NamedTuple, Optional, Sequence, Tuple

from waynav.models.location import Coordinate


EARTH_RADIUS_M = 6_371_000.0


class Point(NamedTuple):
    """Planar point (metres when produced by a LocalProjection)."""
    x: float
    y: float


class PolylineHit(NamedTuple):
    point: Point
    distance: float
    segment_index: int


def distance(p: Point, q: Point) -> float:
    return math.hypot(q.x - p.x, q.y - p.y)


def project_point_to_segment(p: Point, a: Point, b: Point) -> Tuple[Point, float]:
    """
    Orthogonal projection of p onto [a, b], clamped to the segment.

    A zero-length segment projects everything onto a.

    Returns:
        (projection, distance from p to the projection)
    """
    abx, aby = b.x - a.x, b.y - a.y
    ab2 = abx * abx + aby * aby
    if ab2 == 0:
        return a, distance(p, a)
    t = ((p.x - a.x) * abx + (p.y - a.y) * aby) / ab2
    t = max(0.0, min(1.0, t))
    proj = Point(a.x + abx * t, a.y + aby * t)
    return proj, distance(p, proj)


def nearest_on_polyline(polyline: Sequence[Point], point: Point) -> Optional[PolylineHit]:
    """
    Closest projection of point onto any sub-segment of polyline.

    The lowest sub-segment index wins on exact ties. An empty polyline has no
    answer; a single vertex is treated as a zero-length sub-segment.
    """
    if not polyline:
        return None
    if len(polyline) == 1:
        return PolylineHit(polyline[0], distance(point, polyline[0]), 0)

    best: Optional[PolylineHit] = None
    for i in range(len(polyline) - 1):
        proj, d = project_point_to_segment(point, polyline[i], polyline[i + 1])
        if best is None or d < best.distance:
            best = PolylineHit(proj, d, i)
    return best


def polyline_length(polyline: Sequence[Point]) -> float:
    if len(polyline) < 2:
        return 0.0
    return sum(distance(polyline[i], polyline[i + 1]) for i in range(len(polyline) - 1))


def remaining_distance_on_polyline(point: Point, polyline: Sequence[Point]) -> float:
    """Distance left to travel along polyline from the projection of point."""
    if len(polyline) < 2:
        return 0.0
    hit = nearest_on_polyline(polyline, point)
    remain = distance(hit.point, polyline[hit.segment_index + 1])
    for j in range(hit.segment_index + 1, len(polyline) - 1):
        remain += distance(polyline[j], polyline[j + 1])
    return remain


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Not used by progress math, which stays on the planar metric.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

class LocalProjection:
    """
    Equirectangular projection anchored at a reference latitude.

    Error stays well under a percent over the few tens of kilometres a single
    route covers.
    """

    def __init__(self, reference_latitude: float = 0.0) -> None:
        self.reference_latitude = reference_latitude
        self._cos_ref = math.cos(math.radians(reference_latitude))

    @classmethod
    def for_coordinates(cls, coordinates: Sequence[Coordinate]) -> "LocalProjection":
        if not coordinates:
            return cls()
        return cls(coordinates[0].latitude)

    def to_point(self, coord: Coordinate) -> Point:
        return Point(
            EARTH_RADIUS_M * math.radians(coord.longitude) * self._cos_ref,
            EARTH_RADIUS_M * math.radians(coord.latitude),
        )

    def to_coordinate(self, point: Point) -> Coordinate:
        lat = math.degrees(point.y / EARTH_RADIUS_M)
        lon = math.degrees(point.x / (EARTH_RADIUS_M * self._cos_ref)) if self._cos_ref else 0.0
        return Coordinate(latitude=max(-90.0, min(90.0, lat)), longitude=_wrap_longitude(lon))

    def project_polyline(self, coordinates: Sequence[Coordinate]) -> List[Point]:
        return [self.to_point(c) for c in coordinates]


def _wrap_longitude(lon: float) -> float:
    if -180.0 <= lon <= 180.0:
        return lon
    return (lon + 180.0) % 360.0 - 180.0


# ---------------------------------------------------------------------------
# Screen space
# ---------------------------------------------------------------------------

class Viewport:
    """Conversion between geographic coordinates and screen points."""

    def to_screen(self, coord: Coordinate) -> Point:
        raise NotImplementedError

    def to_coordinate(self, point: Point) -> Coordinate:
        raise NotImplementedError


class ScaledViewport(Viewport):
    """
    North-up viewport with a fixed scale.

    Screen origin is the top-left corner at `origin`; x grows east and y grows
    south, one screen unit being `metres_per_pixel` metres on the ground.
    """

    def __init__(self, origin: Coordinate, metres_per_pixel: float = 1.0) -> None:
        if metres_per_pixel <= 0:
            raise ValueError("metres_per_pixel must be positive")
        self.origin = origin
        self.metres_per_pixel = metres_per_pixel
        self._projection = LocalProjection(origin.latitude)
        self._origin_point = self._projection.to_point(origin)

    def to_screen(self, coord: Coordinate) -> Point:
        p = self._projection.to_point(coord)
        return Point(
            (p.x - self._origin_point.x) / self.metres_per_pixel,
            (self._origin_point.y - p.y) / self.metres_per_pixel,
        )

    def to_coordinate(self, point: Point) -> Coordinate:
        return self._projection.to_coordinate(Point(
            self._origin_point.x + point.x * self.metres_per_pixel,
            self._origin_point.y - point.y * self.metres_per_pixel,
        ))
