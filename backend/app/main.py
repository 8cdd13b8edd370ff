"""
DisasterPaws - Incident triage with human-in-the-loop dispatch approval.

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.core.config import get_settings
from backend.app.core.logging import setup_logging, get_logger
from backend.app.api import health, incidents, triage
from backend.app.middleware.trace import TracingMiddleware
from backend.app.services.incident_lifecycle import IncidentNotFoundError, InvalidTransitionError

settings = get_settings()

# Initialize logging
setup_logging(level=settings.log_level, service_name=settings.service_name)
logger = get_logger(__name__)


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    description="Incident triage and human-reviewed dispatch approval",
    version=settings.app_version,
)

# Add Middleware
app.add_middleware(TracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Correlation-ID"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Validation failed for {request.method} {request.url.path}")
    return JSONResponse(status_code=400, content={"error": jsonable_encoder(exc.errors())})


@app.exception_handler(IncidentNotFoundError)
async def not_found_handler(request: Request, exc: IncidentNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "from": exc.from_status.value,
            "to": exc.to_status.value,
        },
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(triage.router, prefix="/triage", tags=["Triage"])
app.include_router(incidents.router, prefix="/incidents", tags=["Incident Lifecycle"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Incident triage with human-in-the-loop dispatch approval",
        "docs": "/docs",
    }


def run():
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
