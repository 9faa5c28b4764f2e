"""Run the backend server locally."""
import logging

import uvicorn

from backend.app.core.config import settings


def serve(host: str = None, port: int = None, reload: bool = False):
    """Start uvicorn on the configured host and port."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "backend.app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


if __name__ == "__main__":
    serve(reload=settings.debug)
