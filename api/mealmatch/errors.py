"""
Typed failures raised by the matching core.

Routes never build HTTPExceptions for these; ``register_exception_handlers``
maps each class to its status code once, at app construction.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError


class MealMatchError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFound(MealMatchError):
    status_code = 404


class PermissionDenied(MealMatchError):
    status_code = 403


class InvalidState(MealMatchError):
    status_code = 409


class TransientStoreFailure(MealMatchError):
    status_code = 503


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MealMatchError)
    async def _meal_match_error(request: Request, exc: MealMatchError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(OperationalError)
    async def _store_unavailable(request: Request, exc: OperationalError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": "Store temporarily unavailable"})
