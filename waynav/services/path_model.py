import logging
from typing import List, Optional, Sequence

from waynav.models.location import Coordinate, Waypoint
from waynav.models.progress import PathSnapshot
from waynav.models.route import Segment

logger = logging.getLogger(__name__)


class PathModel:
    """
    Ordered waypoints plus one segment slot per consecutive waypoint pair.

    Slot i joins waypoints[i] and waypoints[i + 1]. A slot holding None is a
    gap: the pair exists but has no routed geometry. Structural edits keep the
    slot count at max(len(waypoints) - 1, 0) and report which slots became
    stale; filling them is the caller's job, this class never routes.
    """

    def __init__(self) -> None:
        self._waypoints: List[Waypoint] = []
        self._segments: List[Optional[Segment]] = []
        self._stale: set = set()
        self.generation: int = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def waypoints(self) -> List[Waypoint]:
        return list(self._waypoints)

    @property
    def segments(self) -> List[Optional[Segment]]:
        return list(self._segments)

    @property
    def routed_segments(self) -> List[Segment]:
        return [s for s in self._segments if s is not None]

    @property
    def coordinates(self) -> List[Coordinate]:
        return [w.coordinate for w in self._waypoints]

    @property
    def gaps(self) -> List[int]:
        return [i for i, s in enumerate(self._segments) if s is None]

    @property
    def stale(self) -> List[int]:
        return sorted(self._stale)

    def __len__(self) -> int:
        return len(self._waypoints)

    def waypoint(self, index: int) -> Optional[Waypoint]:
        if 0 <= index < len(self._waypoints):
            return self._waypoints[index]
        return None

    def check_invariant(self) -> bool:
        """Slot count matches waypoint pairs. Gaps are allowed."""
        return len(self._segments) == max(len(self._waypoints) - 1, 0)

    def snapshot(self) -> PathSnapshot:
        return PathSnapshot(
            waypoints=self.waypoints,
            segments=self.segments,
            gaps=self.gaps,
            stale=self.stale,
            generation=self.generation,
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self._waypoints.clear()
        self._segments.clear()
        self._stale.clear()
        self.generation += 1
        logger.debug(f"Path reset (generation {self.generation})")

    def seed(self, coordinates: Sequence[Coordinate], segments: Optional[Sequence[Optional[Segment]]] = None) -> List[int]:
        """
        Replace the path with the given coordinates.

        Returns:
            Indices of slots that still need routing.
        """
        self.reset()
        self._waypoints = [Waypoint(coordinate=c) for c in coordinates]
        slot_count = max(len(self._waypoints) - 1, 0)
        given = list(segments or [])[:slot_count]
        self._segments = given + [None] * (slot_count - len(given))
        return self.gaps

    def append_waypoint(self, coord: Coordinate, segment: Optional[Segment] = None) -> Waypoint:
        """Append a waypoint and, if it is not the first, the slot leading to it."""
        waypoint = Waypoint(coordinate=coord)
        if self._waypoints:
            self._segments.append(segment)
        self._waypoints.append(waypoint)
        if segment is None and len(self._waypoints) > 1:
            logger.info(f"Waypoint {len(self._waypoints) - 1} appended without a segment (gap)")
        return waypoint

    def insert_waypoint(self, index: int, coord: Coordinate) -> List[int]:
        """
        Insert a waypoint before position `index`.

        The slot that spanned the insertion point is invalidated and a fresh
        slot is inserted right after it, so slot i - 1 ends at the new point
        and slot i starts from it.

        Returns:
            The one or two stale slot indices.
        """
        if not 0 <= index <= len(self._waypoints):
            raise IndexError(f"Insert index {index} out of range for {len(self._waypoints)} waypoints")

        self._waypoints.insert(index, Waypoint(coordinate=coord))
        if len(self._waypoints) == 1:
            return []

        self._shift_stale(index, +1)
        if index == 0:
            self._segments.insert(0, None)
            stale = [0]
        elif index == len(self._waypoints) - 1:
            self._segments.append(None)
            stale = [index - 1]
        else:
            self._segments.insert(index, None)
            stale = [index - 1, index]
        self._stale.update(stale)
        return stale

    def remove_waypoint(self, index: int) -> List[int]:
        """
        Remove the waypoint at `index`.

        Removing an interior point merges its two slots into one stale slot;
        removing an end point drops the end slot.
        """
        if not 0 <= index < len(self._waypoints):
            raise IndexError(f"Remove index {index} out of range for {len(self._waypoints)} waypoints")

        self._waypoints.pop(index)
        if not self._segments:
            return []

        if index == 0:
            self._drop_slot(0)
            return []
        if index == len(self._waypoints):
            self._drop_slot(index - 1)
            return []

        self._drop_slot(index)
        self._segments[index - 1] = None
        self._stale.add(index - 1)
        return [index - 1]

    def move_waypoint(self, index: int, coord: Coordinate) -> List[int]:
        """Give the waypoint at `index` a new coordinate, keeping its id."""
        waypoint = self.waypoint(index)
        if waypoint is None:
            raise IndexError(f"Move index {index} out of range for {len(self._waypoints)} waypoints")

        self._waypoints[index] = Waypoint(id=waypoint.id, coordinate=coord)
        stale = []
        if index > 0:
            stale.append(index - 1)
        if index < len(self._waypoints) - 1:
            stale.append(index)
        self._stale.update(stale)
        return stale

    def set_segment(self, index: int, segment: Optional[Segment]) -> None:
        """Fill slot `index`, or clear it to a gap with None."""
        if not 0 <= index < len(self._segments):
            raise IndexError(f"Segment index {index} out of range for {len(self._segments)} slots")
        self._segments[index] = segment
        self._stale.discard(index)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _drop_slot(self, index: int) -> None:
        self._segments.pop(index)
        self._stale.discard(index)
        self._shift_stale(index + 1, -1)

    def _shift_stale(self, start: int, delta: int) -> None:
        self._stale = {i + delta if i >= start else i for i in self._stale}
