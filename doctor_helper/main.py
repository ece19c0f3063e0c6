from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from doctor_helper.config import get_settings
from doctor_helper.database import init_db
from doctor_helper.core.exceptions import InteractionLimitReached, StoreUnavailable
import logging

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

LIMIT_REACHED_MESSAGE = (
    "You have reached your monthly interaction limit. "
    "Please upgrade your plan for unlimited access."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    # Startup
    await init_db()
    yield


app = FastAPI(
    title="AI Doctor Helper API",
    description="AI medical chat, health report analysis and plan-based usage metering",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

if settings.ENVIRONMENT == "development":
    logger.info(f"CORS allowed origins: {settings.cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Add Gzip compression
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.exception_handler(InteractionLimitReached)
async def interaction_limit_handler(request: Request, exc: InteractionLimitReached):
    return JSONResponse(
        status_code=429,
        content={
            "error": "Interaction limit reached",
            "reason": exc.reason,
            "message": LIMIT_REACHED_MESSAGE,
            "remaining": exc.remaining,
            "limit": exc.limit,
        },
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error(f"Datastore unavailable on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable"},
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "AI Doctor Helper API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "operational"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT
    }


# Import and include routers
from doctor_helper.api.v1 import auth, plans, chat, user, admin

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(plans.router, prefix="/api/v1", tags=["Plans"])
app.include_router(chat.router, prefix="/api/v1", tags=["Chat"])
app.include_router(user.router, prefix="/api/v1/user", tags=["User"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin Dashboard"])
