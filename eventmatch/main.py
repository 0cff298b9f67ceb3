"""Event Match chat and matching service."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventmatch.core.config import settings
from eventmatch.core.database import create_db_and_tables, session_factory
from eventmatch.core.errors import StoreError, ValidationError
from eventmatch.core.scheduler import scheduler, shutdown_scheduler, start_scheduler
from eventmatch.matching.notifications import NotificationHub
from eventmatch.routes import attendees, chats, enrollments, notifications

# Logging goes to a file; uvicorn keeps its own console access log
log_dir = Path(settings.log_dir).expanduser()
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info(f"Starting {settings.app_name} on {settings.database_url}")
    create_db_and_tables()
    start_scheduler()
    yield
    # Notification jobs live on the shared scheduler, remove them first
    app.state.notifications.stop_all()
    shutdown_scheduler()
    logger.info("Event Match application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Event attendee matching, swipes and per-event chats",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.notifications = NotificationHub(session_factory, scheduler)

# The mobile client calls from arbitrary origins during development
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(attendees.router)
app.include_router(chats.router)
app.include_router(enrollments.router)
app.include_router(notifications.router)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store failure on {request.url.path}: {exc} ({exc.__cause__})")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
