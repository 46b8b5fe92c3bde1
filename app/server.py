"""Container entrypoint for the triage API (``uvicorn server:app``)."""

from __future__ import annotations

from medtriage.api import create_app
from medtriage.config import get_settings


settings = get_settings()
app = create_app(settings)
