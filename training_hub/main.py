"""
Main FastAPI Application Entry Point
Training Hub: training requests, approvals and per diem
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
import time

from training_hub.config.settings import settings
from training_hub.config.database import engine, Base
from training_hub.utils.exceptions import TrainingHubError
from training_hub.utils.logger import setup_logger
from training_hub.middleware.cors_middleware import RouteCORSMiddleware
from training_hub.middleware.logging_middleware import LoggingMiddleware

# Import routes
from training_hub.routes import (
    admin,
    approval,
    auth,
    certificate,
    course,
    notification,
    per_diem,
    training_request,
)

# Setup logger
logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for application startup and shutdown
    """
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")

    # Register every model on Base.metadata before creating tables
    import training_hub.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {str(e)}")

    logger.info("Application started successfully")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Training request approvals and per diem calculation",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

PER_DIEM_CALCULATE_PATH = "/api/per-diem/calculate"

# Per diem calculation is called from any browser origin; the rest of the API
# follows CORS_ORIGINS
app.add_middleware(
    RouteCORSMiddleware,
    public_paths=[PER_DIEM_CALCULATE_PATH],
    public_allow_headers=per_diem.CORS_ALLOW_HEADERS,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)


# Exception handlers
@app.exception_handler(TrainingHubError)
async def training_hub_exception_handler(request: Request, exc: TrainingHubError):
    """Domain errors carry their own status code"""
    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Validation error",
            "errors": jsonable_encoder(exc.errors())
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.opt(exception=exc).error(f"Unhandled exception: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "detail": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
        "health": "/health"
    }


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(per_diem.router, prefix="/api/per-diem", tags=["Per Diem"])
app.include_router(training_request.router, prefix="/api/training-requests", tags=["Training Requests"])
app.include_router(course.router, prefix="/api/courses", tags=["Courses"])
app.include_router(approval.router, prefix="/api/approvals", tags=["Approvals"])
app.include_router(notification.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(certificate.router, tags=["Certificates"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "training_hub.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
