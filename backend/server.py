"""Run the Prompt Maker API with uvicorn."""

import logging
import os

import uvicorn
from dotenv import load_dotenv

# Load .env from backend dir (where server.py lives)
load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

from app.main import app  # noqa: E402

logger = logging.getLogger(__name__)


def main() -> None:
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    for route in app.routes:
        if hasattr(route, "path") and hasattr(route, "methods"):
            logger.info("App route: %s %s", sorted(route.methods) if route.methods else "GET", route.path)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
