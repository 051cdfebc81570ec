"""
Composition root.

Settings, the dependency container and the two process entry points: the
FastAPI app (`app.py`) and the Celery worker (`worker.py`).
"""

from .config import AppSettings, get_settings
from .container import AppContainer, get_container, init_container

__all__ = [
    "AppSettings",
    "get_settings",
    "AppContainer",
    "init_container",
    "get_container",
]
