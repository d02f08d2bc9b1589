"""
Domain errors for the invoicing core and their JSON rendering.

Every error leaves the API as {"error": <kind>, "message": <text>, "errors": [...]}.
"""
import logging
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BackofficeError(Exception):
    """Base class for errors surfaced to API clients."""

    kind = "BackofficeError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[List[str]] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "errors": self.errors}


class ValidationError(BackofficeError):
    """Missing/invalid field, empty item list, non-positive amount or quantity."""
    kind = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST


class PaymentExceedsBalanceError(ValidationError):
    kind = "PaymentExceedsBalance"


class ReferenceNotFoundError(BackofficeError):
    """Party, product, invoice or sales order id that does not resolve."""
    kind = "ReferenceNotFound"
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateInvoiceNumberError(BackofficeError):
    kind = "DuplicateInvoiceNumber"
    status_code = status.HTTP_409_CONFLICT


class SyncFailure(BackofficeError):
    """A master record could not be copied into an invoice snapshot."""
    kind = "SyncFailure"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidMasterRecord(SyncFailure):
    kind = "InvalidMasterRecord"


def _field_messages(exc: RequestValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return messages


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers to the application."""

    @app.exception_handler(BackofficeError)
    async def backoffice_error_handler(request: Request, exc: BackofficeError):
        if exc.status_code >= 500:
            logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError("Invalid request data", errors=_field_messages(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())
