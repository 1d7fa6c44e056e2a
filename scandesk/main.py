import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scandesk.database import close_db, init_db
from scandesk.routers import chat, patients, reports, state
from scandesk.services.sessions import close_registry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Scandesk...")
    await init_db()
    logger.info("Database initialized")
    yield
    close_registry()
    await close_db()
    logger.info("Scandesk shut down")


app = FastAPI(
    title="Scandesk",
    description="Medical imaging dashboard - scan uploads, diagnostics chat and shareable reports",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(state.router)
app.include_router(chat.router)
app.include_router(reports.router)
app.include_router(patients.router)
