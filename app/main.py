"""
trustBank swap API — FastAPI application entry point.

Configures the app, middleware, and registers all API routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api import fees, markets, swap, wallet
from app.services.quidax_client import get_quidax_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup: pick the exchange client and open connections
    from app.database import engine
    from app.redis_client import redis

    get_quidax_client()

    yield

    # Shutdown: close connections
    await engine.dispose()
    await redis.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Instant crypto swaps against Quidax quotations, with tiered trading fees.",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Routers ---
app.include_router(markets.router, prefix="/api/v1/markets", tags=["Markets"])
app.include_router(swap.router, prefix="/api/v1/swap", tags=["Swap"])
app.include_router(fees.router, prefix="/api/v1/config", tags=["Config"])
app.include_router(wallet.router, prefix="/api/v1/wallet", tags=["Wallet"])


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "0.1.0",
        "exchange": "mock" if settings.QUIDAX_MOCK else "live",
    }
