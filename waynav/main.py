import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse

from waynav.core.logging import setup_logging
from waynav.core.settings import get_settings

# Load environment variables from .env file
load_dotenv()

setup_logging(get_settings().LOG_LEVEL)
logger = logging.getLogger(__name__)

from waynav.api.dependencies import get_routing_repository
from waynav.api.v1 import edit, navigation


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_routing_repository.cache_info().currsize:
        await get_routing_repository().close()


app = FastAPI(title="Waynav API", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def log_requests_middleware(request: Request, call_next):
    """Log incoming requests and their processing time."""
    start_time = time.time()
    method = request.method
    path = request.url.path
    logger.info(f"Request: {method} {path}")

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            f"Error: {method} {path} - Exception: {str(e)} - Duration: {process_time:.4f}s",
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error. Please check logs for more details."},
        )

    process_time = time.time() - start_time
    logger.info(f"Response: {method} {path} - Status: {response.status_code} - Duration: {process_time:.4f}s")
    return response


app.include_router(edit.router, prefix="/api/v1/edit", tags=["edit"])
app.include_router(navigation.router, prefix="/api/v1", tags=["navigation"])


@app.get("/api/v1", summary="API Welcome", tags=["General"])
async def api_welcome_message():
    return {
        "message": "Welcome to Waynav API v1",
        "version": app.version,
        "documentation_url": app.docs_url,
        "openapi_url": app.openapi_url,
    }


@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


def run():
    app_settings = get_settings()
    logger.info(f"Starting server on {app_settings.HOST}:{app_settings.PORT}, environment: {app_settings.ENVIRONMENT}")
    uvicorn.run(
        "waynav.main:app",
        host=app_settings.HOST,
        port=app_settings.PORT,
        log_level=app_settings.LOG_LEVEL.lower(),
        reload=app_settings.ENVIRONMENT == "development",
    )


if __name__ == "__main__":
    run()
