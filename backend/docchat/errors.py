"""Error types raised by the document chat services and their HTTP mapping."""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DocChatError(Exception):
    """Base class for all errors that surface at the HTTP boundary."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return JSONResponse(status_code=self.status_code, content=body)


class ValidationError(DocChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request data"


class UnsupportedFileType(DocChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid file type. Only PDF, DOC, DOCX, and TXT files are allowed."


class Unauthorized(DocChatError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class DocumentNotFound(DocChatError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Document not found"


class Conflict(DocChatError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class ExtractionFailed(DocChatError):
    status_code = 422
    default_message = "Could not extract text from this file"


class RateLimited(DocChatError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded. Please wait a moment and try again."


class ProviderAuthError(DocChatError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Invalid Groq API key. Please check your .env file."


class ProviderError(DocChatError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Error calling Groq API"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DocChatError)
    async def handle_docchat_error(request: Request, error: DocChatError) -> JSONResponse:
        logger.warning(
            "%s on %s %s: %s",
            error.__class__.__name__,
            request.method,
            request.url.path,
            error.message,
        )
        return error.to_response()

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, error: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in error.errors()
        )
        return ValidationError(details=details).to_response()

    @app.exception_handler(Exception)
    async def handle_exception(request: Request, error: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
