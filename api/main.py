"""Main FastAPI application for the bridge gateway."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bridge import BridgeService
from config import GatewayConfig
from api.dependencies import set_service
from api.models import HealthResponse
from api.routes import deposits, settlements, websocket

logger = logging.getLogger(__name__)

SERVICE_NAME = "L2 Bridge Gateway API"
VERSION = "1.0.0"


def create_app(config: GatewayConfig) -> FastAPI:
    """Build the API around a service created from `config`."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        logger.info(f"Starting {SERVICE_NAME}...")

        service = BridgeService(config)
        await service.start()
        service.event_log.subscribe(websocket.broadcast_event)
        set_service(service)
        app.state.service = service
        logger.info(f"{SERVICE_NAME} started successfully")

        yield

        logger.info(f"Stopping {SERVICE_NAME}...")
        service.event_log.unsubscribe(websocket.broadcast_event)
        await service.stop()
        set_service(None)
        logger.info(f"{SERVICE_NAME} stopped")

    app = FastAPI(
        title=SERVICE_NAME,
        description="REST API for L1 to L2 asset bridge deposits and settlements",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify your frontend domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(deposits.router)
    app.include_router(settlements.router)
    app.include_router(websocket.router)

    @app.get("/", response_model=HealthResponse)
    async def root():
        """API health check."""
        return HealthResponse(
            status="online",
            service=SERVICE_NAME,
            version=VERSION
        )

    @app.get("/health")
    async def health_check():
        """Simple health check for monitoring."""
        return {"status": "healthy"}

    return app
