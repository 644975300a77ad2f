from fastapi import FastAPI, Request
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import time
import logging

from .api.middleware import AccessMiddleware, PreflightCORSMiddleware
from .api.v1.auth import router as auth_router
from .api.v1.consultations import router as consultations_router
from .api.v1.doctors import router as doctors_router
from .api.v1.patients import router as patients_router
from .core.config import settings
from .core.database import SessionLocal, init_db, seed_categories
from .core.exceptions import InternalError, error_response, register_exception_handlers
from .core.security import get_signing_secret

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Telemedicine appointments for patients, doctors and providers",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

register_exception_handlers(app)

# Middleware setup. The last one added runs first, so CORS wraps everything,
# including the 401s produced by AccessMiddleware.
app.add_middleware(AccessMiddleware, protected_prefixes=settings.PROTECTED_PREFIXES)

# Custom middleware for request logging and timing
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception:
        # Rendered here, inside the CORS layer, so the 500 carries CORS headers
        logger.exception(f"Internal server error on {request.method} {request.url.path}")
        response = error_response(InternalError())
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Log request
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.4f}s"
    )

    return response

# Only add TrustedHostMiddleware in production, not in testing
if not settings.TESTING:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(doctors_router, prefix="/api/v1")
app.include_router(patients_router, prefix="/api/v1")
app.include_router(consultations_router, prefix="/api/v1")

# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info(f"Starting {settings.APP_NAME}...")

    # Refuse to run without a signing key
    try:
        get_signing_secret()
    except RuntimeError:
        logger.critical("JWT_SECRET is not set; aborting startup")
        raise

    db_url = settings.get_database_url
    db_type = "PostgreSQL" if "postgresql" in db_url else "SQLite" if "sqlite" in db_url else "Unknown"
    logger.info(f"Using {db_type} database")

    try:
        init_db()
        db = SessionLocal()
        try:
            seed_categories(db)
        finally:
            db.close()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown."""
    logger.info(f"Shutting down {settings.APP_NAME}...")

# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.VERSION
    }

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": settings.VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health"
    }

# API Info endpoint
@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {
            "authentication": "/api/v1/auth",
            "doctors": "/api/v1/doctors",
            "patients": "/api/v1/patients",
            "consultations": "/api/v1/consultations",
            "docs": "/docs",
            "openapi": "/api/v1/openapi.json"
        }
    }

def run():
    import uvicorn
    uvicorn.run(
        "telemed.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )

if __name__ == "__main__":
    run()
