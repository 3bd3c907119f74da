from waynav.core.settings import Settings
from waynav.repositories.base import BaseRoutingRepository
from waynav.repositories.routing.google_maps import GoogleMapsRepository
from waynav.repositories.routing.osrm import OSRMRepository


def create_routing_repository(settings: Settings) -> BaseRoutingRepository:
    """Build the configured directions service client."""
    provider = settings.ROUTING_PROVIDER.lower()
    if provider == "google":
        if not settings.GOOGLE_MAPS_API_KEY:
            raise ValueError("GOOGLE_MAPS_API_KEY is required for the google routing provider.")
        return GoogleMapsRepository(api_key=settings.GOOGLE_MAPS_API_KEY)
    if provider == "osrm":
        return OSRMRepository(
            base_url=settings.OSRM_BASE_URL,
            profile=settings.OSRM_PROFILE,
            timeout=settings.REQUEST_TIMEOUT_S,
        )
    raise ValueError(f"Unknown routing provider: {settings.ROUTING_PROVIDER}")


__all__ = [
    "GoogleMapsRepository",
    "OSRMRepository",
    "create_routing_repository",
]
