"""
Global exception handlers.

Known CardSwapError failures become a JSON body with their kind and
message, reported with the error's own status code.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cardswap.models.errors import CardSwapError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(CardSwapError)
    async def cardswap_error_handler(request: Request, exc: CardSwapError) -> JSONResponse:
        logger.info("%s on %s: %s", exc.kind.value, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())
