import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .cache import build_cache
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.assessments.router import router as assessments_router
from .domain.dogs.router import router as dogs_router
from .domain.subscriptions.router import router as subscriptions_router
from .domain.walkers.router import router as walkers_router
from .domain.walks.router import router as walks_router
from .shared.errors import WalkServiceError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("arq").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    app.state.cache = build_cache()

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Walk Booking API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(WalkServiceError)
async def walk_service_exception_handler(request: Request, exc: WalkServiceError):
    """Booking, ledger and lifecycle errors carry their own status and kind"""
    logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc), "error": "ValidationError"},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raised ValueError itself
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

app.include_router(dogs_router)
app.include_router(walkers_router)
app.include_router(subscriptions_router)
app.include_router(assessments_router)
app.include_router(walks_router)


@app.get("/")
def root():
    return {"message": "Walk Booking API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .redis_client import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()

        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
