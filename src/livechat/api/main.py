"""To run: python -m src.livechat.api.main
Interact via SwaggerUi: http://localhost:5000/api/docs
"""

import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from src.livechat.utils.logging import setup_logging
from src.livechat.utils.settings import SETTINGS
from src.livechat.api.deps import get_config
from src.livechat.api import (
    auth_router,
    chat_router,
    stats_router,
    websocket_router,
)
from src.livechat.chat.service_container import ServiceContainer

setup_logging(SETTINGS.LOG_LEVEL)
logger = logging.getLogger(__name__)
cfg = get_config()
ORIGINS = [
    origin
    for origin in [*cfg.api.cors_origins, SETTINGS.CLIENT_URL]
    if origin
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Handles initialization and cleanup of service container.
    """
    app.state.startup_complete = False
    try:
        logger.info("Creating service container")
        service_container = ServiceContainer(cfg)
        await service_container.initialize()
    except Exception as e:
        logger.error(f"Error during application initialization: {e}", exc_info=True)
        raise

    app.state.service_container = service_container
    app.state.startup_complete = True
    logger.info("Service container initialized and ready")
    yield
    app.state.startup_complete = False
    await service_container.cleanup()
    logger.info("Service container cleaned up")

app = FastAPI(
    title="Live Support Chat",
    description="Support requests, agent queue and realtime chat.",
    version="1.0",
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
app.include_router(chat_router.router, prefix="/api/chats", tags=["chats"])
app.include_router(stats_router.router, prefix="/api/stats", tags=["stats"])
app.include_router(websocket_router.router, prefix="/ws", tags=["websocket"])


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint for the FastAPI server."""
    return {
        "message": "Welcome to the Live Support Chat API",
        "version": 1.0,
        "docs": "api/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for the FastAPI server."""
    return {"status": "healthy"}


def main() -> None:
    """Main function to run the FastAPI server."""
    uvicorn.run(
        "src.livechat.api.main:app",
        host=cfg.api.host,
        port=cfg.api.port,
        reload=cfg.api.reload,
    )


if __name__ == "__main__":
    main()
