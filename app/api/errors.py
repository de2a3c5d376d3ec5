"""
Exception handlers for the JSON API.

BrokerError subclasses map to their own status code and a {"error": ...}
envelope. Request-body validation failures use the same envelope with 400,
so the frontend sees one error shape for every caller-fixable problem.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.engine.errors import BrokerError, UpstreamError

logger = logging.getLogger("payflow.api")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BrokerError)
    async def broker_error_handler(request: Request, exc: BrokerError):
        if isinstance(exc, UpstreamError):
            logger.error(
                "%s %s failed upstream (%s): %s",
                request.method,
                request.url.path,
                "client error" if exc.is_client_error else "server error",
                exc.body[:500],
            )
        elif exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "fields": [f for f in fields if f]},
        )
