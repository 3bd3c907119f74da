from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Routing collaborator
    ROUTING_PROVIDER: str = "osrm"  # "osrm" | "google"
    OSRM_BASE_URL: str = "https://router.project-osrm.org"
    OSRM_PROFILE: str = "driving"
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    REQUEST_TIMEOUT_S: float = 10.0
    ALLOW_HIGHWAYS: bool = True

    # Editing
    INSERT_TOLERANCE_PX: float = 24.0

    # Progress
    NOMINAL_SPEED_MPS: float = 12.5  # time estimate for edited paths without router durations
    OFF_ROUTE_THRESHOLD_M: Optional[float] = None  # None disables off-route flagging

    class Config:
        case_sensitive = True
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
