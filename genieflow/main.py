"""FastAPI application entry point."""

import logging
import os
import threading

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from genieflow.config import settings
from genieflow.routes import cron, genie_sessions, workflows

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="GenieFlow",
    description="Durable compliance reminders, grant generation and genie sessions",
    version="0.1.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(genie_sessions.router)
app.include_router(workflows.router)
app.include_router(cron.router)

# Worker thread management
worker_thread = None
worker_stop_event = threading.Event()


def run_worker_loop():
    """Run the worker loop in a background thread."""
    from genieflow.worker import worker_loop
    logger.info("Starting background worker thread")
    worker_loop(worker_stop_event)


def run_migrations():
    """Apply alembic migrations up to head."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.dirname(__file__)), "alembic.ini"))
    command.upgrade(alembic_cfg, "head")


@app.on_event("startup")
async def startup_event():
    """Run migrations and start the background worker when the app starts."""
    global worker_thread
    logger.info("Starting application...")

    try:
        logger.info("Running database migrations...")
        run_migrations()
        logger.info("Database migrations completed successfully")
    except Exception as e:
        logger.error(f"Startup database migration error: {e}")
        logger.info("Continuing startup - assuming database is ready")

    if not settings.RUN_WORKER:
        logger.info("Background worker disabled")
        return

    logger.info("Starting background worker thread...")
    worker_thread = threading.Thread(target=run_worker_loop, daemon=True)
    worker_thread.start()
    logger.info("Background worker thread started")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the background worker when the app shuts down."""
    global worker_thread
    logger.info("Shutting down application...")

    # Signal worker to stop
    worker_stop_event.set()

    # Wait for worker thread to finish (with timeout)
    if worker_thread and worker_thread.is_alive():
        worker_thread.join(timeout=10)
        logger.info("Background worker thread stopped")


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "GenieFlow",
        "version": "0.1.0",
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
