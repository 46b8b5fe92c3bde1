"""Triage API deployed as a Modal ASGI app."""

from __future__ import annotations

import modal


app = modal.App("medtriage-api")
image = modal.Image.debian_slim(python_version="3.11").pip_install(
    "fastapi==0.115.6",
    "pydantic==2.10.5",
    "httpx==0.28.1",
).add_local_python_source("medtriage")


@app.function(
    image=image,
    cpu=1,
    timeout=120,
    min_containers=0,
    secrets=[
        modal.Secret.from_name("openai"),
        modal.Secret.from_name("medtriage-config"),
    ],
)
@modal.asgi_app()
def web():
    from medtriage.api import create_app
    from medtriage.config import get_settings

    return create_app(get_settings())
