"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from eventplanner.config import settings
from eventplanner.database import Base, engine
from eventplanner.errors import register_exception_handlers
from eventplanner.middleware.session_gate import SessionGateMiddleware

# Import routers
from eventplanner.routers import auth, events, rsvp, profile, calendar

# Import all models so Base.metadata knows about them
from eventplanner.models.user import User    # noqa: F401
from eventplanner.models.event import Event  # noqa: F401
from eventplanner.models.rsvp import RSVP    # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Event Planner",
    description="Social events with session auth, RSVPs and Google Calendar import",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionGateMiddleware)

register_exception_handlers(app)

# Register routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(rsvp.router, prefix="/api/rsvp", tags=["RSVP"])
app.include_router(profile.router, prefix="/api/profile", tags=["Profile"])
app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
