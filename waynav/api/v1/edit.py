import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from waynav.api.dependencies import EditSessionRegistry, get_edit_sessions, get_route_store
from waynav.api.v1.models import (
    CreateEditSessionRequest,
    EditSessionResponse,
    InsertRequest,
    InsertResponse,
    SaveRouteRequest,
)
from waynav.geometry import Point, ScaledViewport
from waynav.models.location import Coordinate
from waynav.models.route import SavedRoute
from waynav.services.edit_session import EditSession
from waynav.services.route_store import RouteStore

logger = logging.getLogger(__name__)
router = APIRouter()


def _session_or_404(session_id: str, sessions: EditSessionRegistry) -> EditSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Edit session '{session_id}' not found.")
    return session


def _response(session_id: str, session: EditSession) -> EditSessionResponse:
    return EditSessionResponse(
        session_id=session_id,
        mode=session.mode.value,
        path=session.snapshot(),
        unrouted=session.unrouted_indices(),
    )


@router.post("/sessions", response_model=EditSessionResponse, status_code=201)
async def create_session(
    request: CreateEditSessionRequest,
    settle: bool = Query(False, description="Wait for seeded segments to be routed"),
    sessions: EditSessionRegistry = Depends(get_edit_sessions),
    store: RouteStore = Depends(get_route_store),
):
    """Start a new path, or edit existing points / a saved route."""
    points = request.points
    if request.saved_route_id:
        saved = store.select(request.saved_route_id)
        if saved is None:
            raise HTTPException(status_code=404, detail=f"Saved route '{request.saved_route_id}' not found.")
        points = saved.points

    session_id, session = sessions.create(allow_highways=request.allow_highways)
    if points:
        session.seed(points)
        if settle:
            await session.settle()
    logger.info(f"Created edit session {session_id} ({len(points)} seed points)")
    return _response(session_id, session)


@router.get("/sessions/{session_id}", response_model=EditSessionResponse)
async def get_session(session_id: str, sessions: EditSessionRegistry = Depends(get_edit_sessions)):
    return _response(session_id, _session_or_404(session_id, sessions))


@router.post("/sessions/{session_id}/waypoints", response_model=EditSessionResponse)
async def tap_add(
    session_id: str,
    coordinate: Coordinate,
    sessions: EditSessionRegistry = Depends(get_edit_sessions),
):
    """Append a point at the end of the path."""
    session = _session_or_404(session_id, sessions)
    await session.handle_tap_add(coordinate)
    return _response(session_id, session)


@router.post("/sessions/{session_id}/insert", response_model=InsertResponse)
async def insert_on_path(
    session_id: str,
    request: InsertRequest,
    settle: bool = Query(False, description="Wait for the rebuilt segments"),
    sessions: EditSessionRegistry = Depends(get_edit_sessions),
):
    """Insert a point on the nearest segment to a screen tap."""
    session = _session_or_404(session_id, sessions)
    viewport = ScaledViewport(request.origin, request.metres_per_pixel)
    inserted = session.try_insert_on_path(Point(request.x, request.y), viewport, request.tolerance_px)
    if inserted and settle:
        await session.settle()
    base = _response(session_id, session)
    return InsertResponse(inserted=inserted, **base.model_dump())


@router.put("/sessions/{session_id}/waypoints/{index}", response_model=EditSessionResponse)
async def move_waypoint(
    session_id: str,
    index: int,
    coordinate: Coordinate,
    settle: bool = Query(False, description="Wait for the adjacent segments"),
    sessions: EditSessionRegistry = Depends(get_edit_sessions),
):
    session = _session_or_404(session_id, sessions)
    try:
        session.move_waypoint(index, coordinate)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if settle:
        await session.settle()
    return _response(session_id, session)


@router.delete("/sessions/{session_id}/waypoints/{index}", response_model=EditSessionResponse)
async def remove_waypoint(
    session_id: str,
    index: int,
    settle: bool = Query(False, description="Wait for the merged segment"),
    sessions: EditSessionRegistry = Depends(get_edit_sessions),
):
    session = _session_or_404(session_id, sessions)
    try:
        session.remove_waypoint(index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if settle:
        await session.settle()
    return _response(session_id, session)


@router.post("/sessions/{session_id}/reset", response_model=EditSessionResponse)
async def reset_session(session_id: str, sessions: EditSessionRegistry = Depends(get_edit_sessions)):
    session = _session_or_404(session_id, sessions)
    session.reset()
    return _response(session_id, session)


@router.delete("/sessions/{session_id}", status_code=204)
async def cancel_session(session_id: str, sessions: EditSessionRegistry = Depends(get_edit_sessions)):
    """Cancel editing; the path is discarded."""
    _session_or_404(session_id, sessions)
    sessions.discard(session_id)


@router.post("/sessions/{session_id}/save", response_model=SavedRoute, status_code=201)
async def save_session(
    session_id: str,
    request: SaveRouteRequest,
    sessions: EditSessionRegistry = Depends(get_edit_sessions),
    store: RouteStore = Depends(get_route_store),
):
    """Store the session's waypoints as a named route and close the session."""
    session = _session_or_404(session_id, sessions)
    if not len(session.model):
        raise HTTPException(status_code=400, detail="Cannot save an empty path.")
    saved = store.save(request.name, session.model.coordinates)
    sessions.discard(session_id)
    logger.info(f"Edit session {session_id} committed as route {saved.id}")
    return saved
