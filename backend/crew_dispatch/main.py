"""FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .domain_errors import DomainError
from .problem_details import build_problem_details_response
from .routers import assignments, complaint_types, crews

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="Crew Dispatch",
    version="1.0.0",
    description="Complaint assignment lifecycle for municipal field crews"
)

# Production safety checks
if settings.ENV.lower() == "production" and any(origin == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def handle_domain_error(_: Request, exc: DomainError):
    if exc.http_status >= 500:
        logger.error("domain_error code=%s detail=%s details=%s", exc.code, exc.message, exc.details)
    return build_problem_details_response(exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(_: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return build_problem_details_response(
        DomainError(
            code="VALIDATION_ERROR",
            http_status=400,
            message=message,
            details={"errors": [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors]},
        )
    )


# Include routers
app.include_router(assignments.router, prefix="/api/v1")
app.include_router(crews.router, prefix="/api/v1")
app.include_router(complaint_types.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "database": "ok",
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Crew Dispatch API",
        "version": "1.0.0",
        "docs": "/docs"
    }
