import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from waynav.api.dependencies import EditSessionRegistry, get_edit_sessions, get_navigation_session, get_route_store
from waynav.api.v1.models import StartNavigationRequest
from waynav.models.location import Coordinate
from waynav.models.progress import HudUpdate
from waynav.models.route import SavedRoute
from waynav.repositories.base import NoRouteFound, RoutingServiceError
from waynav.services.navigation import NavigationSession
from waynav.services.route_store import RouteStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/navigation/start", response_model=HudUpdate)
async def start_navigation(
    request: StartNavigationRequest,
    sessions: EditSessionRegistry = Depends(get_edit_sessions),
    navigation: NavigationSession = Depends(get_navigation_session),
):
    """Navigate an edited path, or fetch directions between two points."""
    try:
        if request.session_id:
            session = sessions.get(request.session_id)
            if session is None:
                raise HTTPException(status_code=404, detail=f"Edit session '{request.session_id}' not found.")
            if not len(session.model):
                raise HTTPException(status_code=400, detail="Edit session has no waypoints.")
            if request.allow_highways is not None:
                session.allow_highways = request.allow_highways
            update = await navigation.start_with_edit_session(session, request.current_position)
            sessions.discard(request.session_id)
            return update

        if request.origin is None or request.destination is None:
            raise HTTPException(status_code=400, detail="Either session_id or origin and destination are required.")
        return await navigation.start_with_directions(
            request.origin, request.destination, request.allow_highways
        )
    except NoRouteFound as e:
        logger.warning(f"No route for navigation request: {e}")
        raise HTTPException(status_code=404, detail=f"Could not find directions: {e}")
    except RoutingServiceError as e:
        logger.error(f"Routing service error while starting navigation: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail=f"Routing service error: {e}")


@router.post("/navigation/position", response_model=HudUpdate)
async def update_position(
    position: Coordinate,
    navigation: NavigationSession = Depends(get_navigation_session),
):
    """Feed one location sample and get the HUD state back."""
    update = navigation.update(position)
    if update is None:
        raise HTTPException(status_code=409, detail="Navigation is not active.")
    return update


@router.post("/navigation/stop", status_code=204)
async def stop_navigation(navigation: NavigationSession = Depends(get_navigation_session)):
    navigation.stop()


@router.get("/routes", response_model=List[SavedRoute])
async def list_routes(store: RouteStore = Depends(get_route_store)):
    return store.list()


@router.get("/routes/{route_id}", response_model=SavedRoute)
async def get_route(route_id: str, store: RouteStore = Depends(get_route_store)):
    route = store.get(route_id)
    if route is None:
        raise HTTPException(status_code=404, detail=f"Saved route '{route_id}' not found.")
    return route
