"""
Error responses - LorevaultError becomes ``{"error": {"code", "message"}}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lorevault.errors import LorevaultError

logger = logging.getLogger(__name__)


async def lorevault_error_handler(request: Request, exc: LorevaultError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc.code.value}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def register_error_handlers(app: FastAPI) -> None:
    """Install the error handlers on an application."""
    app.add_exception_handler(LorevaultError, lorevault_error_handler)
