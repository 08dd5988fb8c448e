"""Run the relay with uvicorn: ``python -m relay``."""
from __future__ import annotations

import uvicorn

from .app import create_app
from .config import get_settings
from .logging_config import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
