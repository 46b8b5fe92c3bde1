"""FastAPI application for the triage service."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from medtriage.config import Settings, get_settings
from medtriage.engine import CompletionBackend, EmitFn, TriageEngine
from medtriage.language import supported_languages
from medtriage.schemas import TriageRequest
from medtriage.utils import utc_now

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger("medtriage")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        root.addHandler(handler)


def _validation_detail(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def create_app(
    settings: Settings | None = None,
    client: CompletionBackend | None = None,
    *,
    emit: EmitFn | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    engine = TriageEngine(settings, client)

    app = FastAPI(title="MedTriage API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "service": settings.app_name,
            "timestamp": utc_now().isoformat(),
            "model": settings.model,
            "api_key_configured": settings.credentials_configured,
            "demo_mode": settings.demo_mode,
        }

    @app.get("/languages")
    async def languages() -> dict[str, Any]:
        return {"languages": supported_languages()}

    @app.post("/triage")
    async def triage(payload: Any = Body(...)):
        try:
            request = TriageRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=422,
                detail={"error": "invalid_request", "errors": _validation_detail(exc)},
            ) from exc

        if not request.message.strip():
            raise HTTPException(
                status_code=422,
                detail={"error": "invalid_request", "message": "`message` must not be blank."},
            )

        result = await engine.run(request, emit)
        return result.to_payload()

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error: path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error": "internal_error"},
        )

    return app
