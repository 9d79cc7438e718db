"""
FastAPI server for the Retell Custom LLM voice bridge.

This module initializes and configures the FastAPI application that Retell
connects to for every call. It implements the Retell Custom LLM WebSocket
protocol and forwards each caller turn to the agent gateway, so phone callers
talk to the same agent that is available over text.

The server accepts one WebSocket connection per call, routes frames to the
appropriate handlers, and exposes small HTTP endpoints for monitoring.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket

from retell_bridge.bridge_server import BridgeServer
from retell_bridge.config.logging_config import configure_logging
from retell_bridge.config.settings import load_config

# Configure logging
logger = configure_logging()

# Close code for "try again later"
WS_CLOSE_TRY_AGAIN_LATER = 1013

APP_NAME = "Retell Voice Bridge"
APP_DESCRIPTION = "Bridge between Retell Custom LLM calls and the agent gateway"
APP_VERSION = "1.0.0"


def create_app(server: BridgeServer) -> FastAPI:
    """Build the FastAPI application serving a bridge.

    Args:
        server: The bridge the application starts, stops and routes calls to

    Returns:
        FastAPI: The configured application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await server.start()
        try:
            yield
        finally:
            await server.stop()

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.bridge_server = server
    ws_path = server.config.websocket.path

    async def serve_call(websocket: WebSocket, call_id: str = None):
        if not server.running:
            logger.warning("Rejecting call: bridge is not running")
            await websocket.close(code=WS_CLOSE_TRY_AGAIN_LATER)
            return
        await server.manager.handle_websocket(websocket, call_id)

    @app.websocket(ws_path + "/{call_id}")
    async def call_endpoint(websocket: WebSocket, call_id: str):
        """WebSocket endpoint Retell opens for a call.

        The last path segment is the Retell call id. Frames follow the Retell
        Custom LLM WebSocket protocol.
        """
        await serve_call(websocket, call_id)

    @app.websocket(ws_path)
    async def anonymous_call_endpoint(websocket: WebSocket):
        """Same as the call endpoint, for connections without a call id."""
        await serve_call(websocket)

    @app.get("/status")
    async def status():
        """Bridge status: running flag, listen port, path and allowlist."""
        return server.status()

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring system status.

        Returns:
            dict: Whether the bridge runs, whether the gateway connection is up
            and how many calls are live.
        """
        return {
            "status": "healthy" if server.running else "stopped",
            "running": server.running,
            "gateway_connected": server.gateway.is_connected(),
            "active_calls": len(server.registry.get_all_calls()),
        }

    @app.get("/")
    async def root():
        """Root endpoint to display basic information about the API."""
        return {
            "name": APP_NAME,
            "description": APP_DESCRIPTION,
            "version": APP_VERSION,
            "endpoints": {
                f"{ws_path}/{{call_id}}": "WebSocket endpoint for Retell Custom LLM calls",
                "/status": "Bridge status",
                "/health": "Health check endpoint",
            },
        }

    return app


bridge_server = BridgeServer(load_config())
app = create_app(bridge_server)


if __name__ == "__main__":
    import uvicorn

    config = bridge_server.config
    logger.info(f"Starting server on http://{config.host}:{config.websocket.port}")
    uvicorn.run(
        app,
        host=config.host,
        port=config.websocket.port,
        websocket_ping_interval=20,
        websocket_ping_timeout=20,
        http="h11",
    )
