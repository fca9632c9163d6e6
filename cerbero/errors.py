"""Request-level failures.

Every error here is local to one request and maps to a fixed HTTP status.
They subclass ``HTTPException`` so services can raise them directly and
FastAPI renders them as ``{"detail": ...}`` without extra handlers.
"""
from typing import Optional

from fastapi import HTTPException


class FileShareError(HTTPException):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=type(self).status_code, detail=detail or self.default_detail)


class BadUpload(FileShareError):
    status_code = 400
    default_detail = "Could not process the upload"


class Unauthorized(FileShareError):
    status_code = 401
    default_detail = "Wrong password"


class Forbidden(FileShareError):
    status_code = 403
    default_detail = "Access forbidden"


class PathDenied(Forbidden):
    default_detail = "Access denied: path escapes the shared directory"


class NotFound(FileShareError):
    status_code = 404
    default_detail = "File not found"


class PayloadTooLarge(FileShareError):
    status_code = 413
    default_detail = "Upload exceeds the size limit"


class TooManyRequests(FileShareError):
    status_code = 429
    default_detail = "Too many requests"


class StorageError(FileShareError):
    status_code = 500
    default_detail = "Storage error"
