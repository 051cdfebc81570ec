"""
Main module entry point.

``python -m prediction_pipeline.main`` starts the Celery worker; pass ``api``
to serve the HTTP interface with uvicorn instead.
"""

import sys

import uvicorn

from .config import get_settings
from .worker import main as worker_main


def main(argv=None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if args and args[0] == "api":
        settings = get_settings()
        uvicorn.run(
            "prediction_pipeline.main.app:app",
            host=settings.api.host,
            port=settings.api.port,
            reload=settings.api.reload,
        )
        return
    worker_main()


if __name__ == "__main__":
    main()
