import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class BillingError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BillingError):
    status_code = 400


class NotFoundError(BillingError):
    status_code = 404


class InsufficientStockError(BillingError):
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int, kit_name: str | None = None) -> None:
        self.product_name = product_name
        self.available = available
        self.requested = requested
        self.kit_name = kit_name
        if kit_name:
            message = (
                f'Not enough stock for product "{product_name}" in kit "{kit_name}". '
                f"Available: {available}, Required: {requested}."
            )
        else:
            message = (
                f'Not enough stock for product "{product_name}". '
                f"Available: {available}, Requested: {requested}."
            )
        super().__init__(message)


class ConflictError(BillingError):
    status_code = 409


class PersistenceError(BillingError):
    status_code = 500


async def _billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("%s %s storage failure", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "persistence failure, retry the request"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillingError, _billing_error_handler)
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)
