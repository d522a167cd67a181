"""Entry point for the persistence API: ``python -m renderstore.api.server``."""

from __future__ import annotations

import uvicorn

from renderstore.api.app import create_app
from renderstore.config import Settings
from renderstore.log_config import configure_logging


def main() -> None:
    settings = Settings()
    configure_logging(settings.logging)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
