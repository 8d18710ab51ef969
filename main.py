"""Main entry point for the session host."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from session_host.api import create_fastapi_app
from session_host.app import Application
from session_host.config import load_settings
from session_host.logging_config import setup_logging


def main():
    """Run the application."""
    load_dotenv(Path(__file__).resolve().parent / ".env")

    settings = load_settings()
    setup_logging(settings.log_level)

    application = Application(settings)
    app = create_fastapi_app(application, agent_type=settings.agent_runtime)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,  # keep the JSON handlers from setup_logging
    )


if __name__ == "__main__":
    main()
