from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import time
import uuid

from .config import settings
from .database import create_tables
from .exceptions import BookingEngineError
from .utils.logging_config import setup_logging, get_logger, set_request_context, clear_request_context
from .utils.rate_limiter import limiter
from .services.status_scheduler import start_status_scheduler, stop_status_scheduler

from .routers import bookings, rooms, services, promotions, loyalty, reviews, invoices, health

logger = get_logger("hotel_booking.main")

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(settings.log_level, json_format=settings.log_json)

    logger.info(f"Starting hotel booking engine ({settings.environment})")
    logger.info(f"CORS origins: {settings.cors_origins}")

    create_tables()

    if settings.status_scheduler_enabled:
        start_status_scheduler()
    else:
        logger.info("Status scheduler disabled")

    yield

    logger.info("Shutting down hotel booking engine...")
    if settings.status_scheduler_enabled:
        stop_status_scheduler()


app = FastAPI(
    title="Hotel Booking Engine API",
    description="Booking lifecycle, promotions, loyalty points and reviews",
    version=API_VERSION,
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            logger.api_request(request.method, request.url.path, response.status_code, round(duration_ms, 2))
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


# Add other middleware AFTER CORS
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.code} ({exc.message})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, please try again later", "code": "rate_limited"}
    )


app.include_router(bookings.router)
app.include_router(rooms.router)
app.include_router(services.router)
app.include_router(promotions.router)
app.include_router(loyalty.router)
app.include_router(reviews.router)
app.include_router(invoices.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "message": "Hotel Booking Engine API",
        "version": API_VERSION,
        "docs": "/docs",
        "status": "running"
    }
