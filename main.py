"""
FastAPI application entry point with async lifespan.
"""
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import init_db, close_db, AsyncSessionLocal
from app.core.logging import configure_logging
from app.handlers.notifications import NotificationDispatcher, PushSender
from app.handlers.pipeline import MutationPipeline
from app.routes import health, dogs, owners, media, tokens, changes, settings as settings_routes, subscriptions

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan manager for startup and shutdown."""
    # Startup: refuse to run without push credentials
    sender = PushSender.from_settings(settings)
    await init_db()
    app.state.pipeline = MutationPipeline(
        settings,
        NotificationDispatcher(sender, AsyncSessionLocal),
        AsyncSessionLocal
    )
    yield
    # Shutdown
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Dog directory backend with magic link editing, audit trail and admin notifications",
    lifespan=lifespan
)

# CORS middleware (static frontend sends the magic token cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(health.router)
app.include_router(dogs.router)
app.include_router(owners.router)
app.include_router(media.router)
app.include_router(tokens.router)
app.include_router(changes.router)
app.include_router(settings_routes.router)
app.include_router(subscriptions.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    uvicorn.run(
        app,
        host='0.0.0.0',
        port=settings.port,
        log_level=settings.log_level.lower()
    )
