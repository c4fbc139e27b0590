import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from . import models, models_billing  # noqa: F401  (register tables)
from .config import FRONTEND_URL
from .database import Base, SessionLocal, engine
from .domain.billing import router as billing_router
from .domain.billing import webhooks_router as fib_webhooks_router
from .domain.documents import router as documents_router
from .domain.imaging import router as imaging_router
from .routes.email import router as email_router
from .security_headers import SecurityHeadersMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
# Production schema is managed by the hosted database; local runs create it on boot
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"
SLOW_REQUEST_MS = float(os.getenv("SLOW_REQUEST_MS", "2000"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🦷 Dental Pro API starting")
    if AUTO_CREATE_TABLES:
        try:
            Base.metadata.create_all(bind=engine, checkfirst=True)
            logger.info("✅ Database tables ready")
        except Exception as e:
            # Several workers booting at once race on CREATE TABLE
            if "already exists" in str(e):
                logger.info("Database tables already created by another worker")
            else:
                logger.error(f"❌ Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()
    except Exception as e:
        logger.warning(f"⚠️ Redis unavailable, payment endpoints will answer 503: {e}")

    yield
    logger.info("Dental Pro API shutting down")


app = FastAPI(title="Dental Pro API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    A missing or malformed Authorization header is an authentication failure,
    not a body validation error: answer 401 for it and 422 for everything else.
    """
    errors = exc.errors()
    if any("authorization" in str(error.get("loc", "")).lower() for error in errors):
        logger.warning(f"🔒 Missing or invalid Authorization header on {request.url.path}")
        return JSONResponse(
            status_code=401,
            content={"detail": "Not authenticated. Send a Bearer token in the Authorization header."},
        )

    logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")
    # ctx may hold exception instances that are not JSON serialisable
    detail = [{k: v for k, v in error.items() if k != "ctx"} for error in errors]
    return JSONResponse(status_code=422, content={"detail": detail})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag every request with an id and log failures and slow responses"""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"[{request_id}] {request.method} {request.url.path} raised {e!r}")
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request_id
    if response.status_code >= 500:
        logger.error(
            f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)"
        )
    elif elapsed_ms > SLOW_REQUEST_MS:
        logger.warning(f"🐌 [{request_id}] {request.method} {request.url.path} took {elapsed_ms:.0f}ms")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/docs", "/openapi.json"])
else:
    logger.warning("⚠️ Security headers disabled")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:5173").split(",")
    if origin.strip()
]
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)

for router in (
    billing_router,
    fib_webhooks_router,
    documents_router,
    imaging_router,
    email_router,
):
    app.include_router(router)


@app.get("/")
def root():
    return {"service": "dentalpro-api", "version": app.version}


@app.get("/health")
def health():
    """Liveness plus database and Redis reachability"""
    checks = {}

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"❌ Database health check failed: {e}")
        checks["database"] = "unreachable"
    finally:
        db.close()

    try:
        from .rate_limiter import get_redis_client

        started = time.perf_counter()
        get_redis_client().ping()
        checks["redis"] = f"ok ({(time.perf_counter() - started) * 1000:.1f}ms)"
    except Exception as e:
        checks["redis"] = f"unreachable: {e}"

    healthy = checks["database"] == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "healthy" if healthy else "degraded", "checks": checks},
    )
