"""FastAPI application: lifecycle, session routes."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from flamesim.config import settings
from flamesim.routes import session_router
from flamesim.services.graphql_gateway import RemoteGateway
from flamesim.utils.logging import get_logger, setup_logging
from flamesim.workflow.session import Session

logger = get_logger(__name__)


def create_app(gateway: RemoteGateway | None = None) -> FastAPI:
    """Build the app. Pass a gateway to talk to something other than the configured endpoint."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: logging, gateway, session. Shutdown: pending operations, HTTP client."""
        setup_logging()
        session = Session(gateway or RemoteGateway())
        app.state.session = session
        logger.info("session_started", endpoint=session.gateway.endpoint)
        yield
        await session.aclose()
        app.state.session = None

    app = FastAPI(
        title="Flame Simulator",
        description="Rewrite a post provocatively, preview replies and images, publish after confirmation",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(session_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "graphql_endpoint": settings.graphql_endpoint}

    return app


app = create_app()
