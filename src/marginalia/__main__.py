"""Entry point for `python -m marginalia`."""

import uvicorn

from .app import create_app
from .config import Settings
from .logging_config import setup_colored_logging

if __name__ == "__main__":
    setup_colored_logging()

    settings = Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")
