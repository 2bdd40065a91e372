"""
Judgementals Main Application

Entry point that serves the FastAPI backend with uvicorn.
"""

import os

import structlog
import uvicorn
from dotenv import load_dotenv

from .api.backend import app as fastapi_app

logger = structlog.get_logger(__name__)


def create_server(host: str = "127.0.0.1", port: int = 8000) -> uvicorn.Server:
    """
    Factory function to create the uvicorn server for the backend.

    Args:
        host: Interface to bind
        port: Port to listen on

    Returns:
        Configured server, not yet running
    """
    config = uvicorn.Config(
        app=fastapi_app,
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower()
    )
    return uvicorn.Server(config)


def main():
    """Main entry point for the application."""
    load_dotenv()
    host = os.getenv("BACKEND_HOST", "127.0.0.1")
    port = int(os.getenv("BACKEND_PORT", "8000"))

    try:
        logger.info("Starting Judgementals backend", host=host, port=port)
        create_server(host=host, port=port).run()
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error("Application failed to start", error=str(e))
        raise


if __name__ == "__main__":
    main()
