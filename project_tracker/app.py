"""
FastAPI application entry point for the project tracker.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from project_tracker.config import get_settings
from project_tracker.projects import MediaNotFound, ProjectNotFound
from project_tracker.routes import router

logger = logging.getLogger(__name__)


def _error(status_code: int, detail, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": jsonable_encoder(detail), "message": message},
        headers=headers,
    )


def _first_error_message(errors: list) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = first.get("msg", "Invalid value")
    return f"{loc}: {msg}" if loc else msg


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, exc.detail, str(exc.detail), getattr(exc, "headers", None))


async def _not_found(request: Request, exc: LookupError) -> JSONResponse:
    return _error(404, str(exc), str(exc))


async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    return _error(422, errors, _first_error_message(errors))


async def _model_invalid(request: Request, exc: ValidationError) -> JSONResponse:
    errors = exc.errors(include_url=False, include_context=False)
    return _error(422, errors, _first_error_message(errors))


async def _bad_value(request: Request, exc: ValueError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return _error(400, str(exc), str(exc))


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Project Tracker API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(ProjectNotFound, _not_found)
    app.add_exception_handler(MediaNotFound, _not_found)
    app.add_exception_handler(RequestValidationError, _request_invalid)
    app.add_exception_handler(ValidationError, _model_invalid)
    app.add_exception_handler(ValueError, _bad_value)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
