"""Main FastAPI application for the inspection API.

Provides:
- Health check endpoint
- Inspection submission, retrieval and reviewer validation
- Per-vehicle history and predictive risk
- Stateless classification / scoring tools
"""

from typing import Dict

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inspection_api.api.deps import close_notifier
from inspection_api.api.v1.endpoints import inspections, tools, vehicles
from inspection_api.api.v1.schemas import HealthResponse
from inspection_api.config import settings
from inspection_core.logging_config import configure_logging
from inspection_core.workflow.errors import (
    AlreadyValidated,
    DecisionCountMismatch,
    DownstreamWriteFailure,
    InspectionNotFound,
    MissingRepairDescription,
    NotValidatable,
    Unauthorized,
    WorkflowError,
)

configure_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger(__name__)

# WorkflowError subclass -> HTTP status
_ERROR_STATUS = {
    Unauthorized: status.HTTP_403_FORBIDDEN,
    InspectionNotFound: status.HTTP_404_NOT_FOUND,
    NotValidatable: status.HTTP_409_CONFLICT,
    AlreadyValidated: status.HTTP_409_CONFLICT,
    MissingRepairDescription: status.HTTP_422_UNPROCESSABLE_ENTITY,
    DecisionCountMismatch: status.HTTP_422_UNPROCESSABLE_ENTITY,
    DownstreamWriteFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Fleet maintenance - inspection defect classification and validation",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    log = logger.error if status_code >= 500 else logger.info
    log("workflow_error", code=exc.code, status=status_code, path=request.url.path)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup_event() -> None:
    logger.info(
        "api_starting",
        app=settings.app_name,
        version=settings.app_version,
        validator_roles=settings.validator_role_list,
        notifier="webhook" if settings.notify_webhook_url else "log",
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    close_notifier()
    logger.info("api_stopping", app=settings.app_name)


@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    return {
        "message": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    status_code=status.HTTP_200_OK,
)
async def health_check() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(status="healthy", version=settings.app_version)


# Include routers
app.include_router(inspections.router, prefix="/v1/inspections", tags=["Inspections"])
app.include_router(vehicles.router, prefix="/v1/vehicles", tags=["Vehicles"])
app.include_router(tools.router, prefix="/v1/tools", tags=["Tools"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
