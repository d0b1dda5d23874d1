"""
Main FastAPI application for Info Hub Aggregator Service.
Includes lifespan management for provider connections, the uniform response
envelope and request logging.
"""

from contextlib import asynccontextmanager
import time
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from info_hub.core.config import settings
from info_hub.core.logging_config import setup_logging, create_logger
from info_hub.api.endpoints import ApiError, router as api_router
from info_hub.api.schemas import HealthStatus, SuccessResponse, error_response, success_response
from info_hub.services.data_aggregator import aggregator_service

# Setup logging first
setup_logging()
logger = create_logger(__name__)

# Process start time for uptime reporting
startup_time = time.time()

# Paths excluded from access logging
QUIET_PATHS = {"/health", "/ping", "/docs", "/docs/", "/redoc", "/openapi.json"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Opens provider connections on startup and closes them on shutdown.
    """
    logger.info("Starting Info Hub Aggregator Service", extra={
        "version": settings.app_version,
        "debug": settings.debug
    })

    try:
        await aggregator_service.initialize()
        logger.info("Info Hub Aggregator Service started successfully")
    except Exception as e:
        logger.error("Failed to start Info Hub Aggregator Service", extra={
            "error": str(e)
        })
        raise

    yield  # Application is running

    logger.info("Shutting down Info Hub Aggregator Service")

    try:
        await aggregator_service.shutdown()
        logger.info("Info Hub Aggregator Service shutdown completed")
    except Exception as e:
        logger.error("Error during service shutdown", extra={
            "error": str(e)
        })


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Uniform REST surface over weather, geocoding, quote, exchange, stock and news providers",
    version=settings.app_version,
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request in access-log form."""
    start_time = time.time()
    path = request.url.path

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error("Request failed", extra={
            "method": request.method,
            "path": path,
            "error": str(e),
            "process_time": round(process_time, 4),
            "client_ip": request.client.host if request.client else None
        })
        # Rendered by internal_error_handler
        raise

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    if path in QUIET_PATHS or path.startswith("/docs/"):
        return response

    message = f"{request.method} {path} {response.status_code} rt={process_time:.3f}"
    extra = {
        "method": request.method,
        "path": path,
        "status_code": response.status_code,
        "process_time": round(process_time, 4),
        "user_agent": request.headers.get("user-agent", "-")
    }
    if response.status_code >= 500:
        logger.error(message, extra=extra)
    elif response.status_code >= 400:
        logger.warning(message, extra=extra)
    else:
        logger.info(message, extra=extra)

    return response


# Exception handlers
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Render service failures in the error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, exc.details)
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with structured error response."""
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content=error_response(
                "NOT_FOUND",
                "The requested resource does not exist",
                {"path": request.url.path, "method": request.method}
            )
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(f"HTTP_{exc.status_code}", str(exc.detail))
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation failures."""
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_response("VALIDATION_ERROR", "Request parameter validation failed", details)
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    """Handle unexpected errors without leaking details outside debug mode."""
    logger.error("Internal server error", extra={
        "path": request.url.path,
        "method": request.method,
        "error": str(exc)
    })
    return JSONResponse(
        status_code=500,
        content=error_response(
            "INTERNAL_SERVER_ERROR",
            str(exc) if settings.debug else "Internal server error"
        )
    )


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health", response_model=SuccessResponse[HealthStatus], tags=["health"])
async def health():
    """Liveness check with process uptime."""
    return success_response(HealthStatus(uptime=round(time.time() - startup_time, 3)))


@app.get("/ping", response_model=SuccessResponse[str], tags=["health"])
async def ping():
    return success_response("pong")


if __name__ == "__main__":
    import uvicorn

    # Run the application
    uvicorn.run(
        "info_hub.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=False
    )
