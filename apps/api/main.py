"""
Fanta Build - FastAPI Backend
Application entry point with health, credits, creations and admin routing.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from config import settings
from database import engine
import models  # noqa: F401
from routers import admin, creations, credits, health


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Fanta Build API...")
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        print("🗄️ Database connection verified. Run `alembic upgrade head` to apply pending migrations.")
    except Exception as e:
        print(f"⚠️ Database check failed: {e}")
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Fanta Build API",
    description="Accounts, creations, credits and payment sessions for Fanta Build",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(credits.router, prefix="/api/credits", tags=["Credits"])
app.include_router(creations.router, prefix="/api/creations", tags=["Creations"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Fanta Build API",
        "version": "0.1.0",
        "status": "running"
    }
