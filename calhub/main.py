"""Calendar Hub Web Application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from calhub.core.config import settings
from calhub.core.database import close_database, init_database
from calhub.core.result import Err
from calhub.routes import auth, calendars, events, setup, sync

# Configure logging
log_dir = Path.home() / ".logs" / "calhub"
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
    logger.info("Starting Calendar Hub")
    match init_database(settings.database_url):
        case Err(error):
            logger.critical(f"Database unavailable: {error.message}")
            raise RuntimeError(error.message)
    yield
    close_database()
    logger.info("Calendar Hub shut down")


app = FastAPI(
    title=settings.app_name,
    description="Connects calendar providers and keeps a local, synchronized view of their calendars",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
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

app.include_router(auth.router)
app.include_router(calendars.router)
app.include_router(events.router)
app.include_router(setup.router)
app.include_router(sync.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
