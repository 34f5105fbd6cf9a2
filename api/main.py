"""
FastAPI backend for SailSmart leg search.

Provides REST API endpoints for:
- Leg search by date, requirements and free text
- Geographic leg search by departure/arrival bounding boxes
- Region browsing and single-leg details
- Sailing region lookup
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from api.config import settings
from api.middleware import setup_middleware, structured_logger, get_request_id
from api.routers import legs, regions, system
from api.schemas.common import ErrorResponse
from legsearch import __version__
from legsearch.errors import StoreError

# JSON logs are self-contained
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(message)s',
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Application factory for the SailSmart leg search API.

    Creates and configures the FastAPI application with middleware,
    routers and exception handlers.

    Returns:
        FastAPI: Configured application instance
    """
    application = FastAPI(
        title="SailSmart Leg Search API",
        description="""
## Sailing Leg Search API

Search published sailing legs that need crew.

### Features
- Geographic search by departure/arrival bounding boxes
- Filters for dates, skills, risk level, experience and boat
- Explanations when legs exist in an area but outside the searched dates
- Named sailing region lookup
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    setup_middleware(application, debug=settings.debug)

    # CORS middleware - use configured origins only (NO WILDCARDS)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_credentials,
        allow_methods=[m.strip() for m in settings.cors_methods.split(",")],
        allow_headers=["*"],
    )

    @application.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        structured_logger.error(
            "Leg store unavailable",
            error=str(exc),
            operation=exc.operation or None,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(
                error="Service Unavailable",
                detail="Leg search is temporarily unavailable. Please try again later.",
                request_id=get_request_id(),
            ).model_dump(),
        )

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=422, content={"detail": exc.errors()})

    application.include_router(system.router)
    application.include_router(legs.router)
    application.include_router(regions.router)

    return application


# Create the application
app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
