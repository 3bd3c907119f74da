"""Route geometry, path editing and progress tracking for navigation clients."""

from waynav.models.location import Coordinate, Waypoint
from waynav.models.progress import HudUpdate, PathSnapshot, ProgressState, StepInfo
from waynav.models.route import RoutedPath, SavedRoute, Segment, SegmentChain, Step, StepRoute
from waynav.services.edit_session import EditSession
from waynav.services.navigation import NavigationSession
from waynav.services.path_model import PathModel
from waynav.services.progress import ProgressTracker
from waynav.services.route_source import RouteSource, SegmentChainSource, StepRouteSource
from waynav.services.route_store import RouteStore

__all__ = [
    "Coordinate",
    "Waypoint",
    "HudUpdate",
    "PathSnapshot",
    "ProgressState",
    "StepInfo",
    "RoutedPath",
    "SavedRoute",
    "Segment",
    "SegmentChain",
    "Step",
    "StepRoute",
    "EditSession",
    "NavigationSession",
    "PathModel",
    "ProgressTracker",
    "RouteSource",
    "SegmentChainSource",
    "StepRouteSource",
    "RouteStore",
]
