"""
Valentine Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for each failure the API can report.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return `{"error": ...}` JSON bodies with the matching HTTP status.
Who:   Raised by services and the storage layer; caught by global handlers.

Exception Hierarchy:
    ValentineError (base)
    ├── ValidationError            → 400 Bad Request
    │   ├── InvalidPhotoCountError
    │   ├── PhotoTooLargeError
    │   └── EmptyPhotoError
    ├── NotFoundError              → 404 Not Found
    ├── UnsupportedImageError      → 500 Internal Server Error
    ├── DatabaseError              → 500 Internal Server Error
    │   ├── StorageUnavailableError
    │   └── WriteFailureError
    └── ConfigurationError         → startup failure, never an HTTP response
"""

from typing import Any, Dict, Optional


class ValentineError(Exception):
    """
    Base exception for all Valentine application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ValentineError):
    """
    Raised when client input fails validation.

    HTTP:    400 Bad Request
    Example response:
        {"error": "Please upload 5 photos."}
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidPhotoCountError(ValidationError):
    """A create request did not carry exactly the required number of photos."""

    def __init__(self, received: int, required: int = 5):
        super().__init__(
            message=f"Please upload {required} photos.",
            field="photos",
            context={"received": received, "required": required},
        )
        self.received = received
        self.required = required


class PhotoTooLargeError(ValidationError):
    """One uploaded photo is bigger than MAX_FILE_SIZE."""

    def __init__(self, filename: str, size: int, max_size: int):
        max_mb = max_size / (1024 * 1024)
        super().__init__(
            message=f"Photo '{filename}' exceeds the maximum size of {max_mb:.0f}MB.",
            field="photos",
            context={"filename": filename, "size": size, "max_size": max_size},
        )


class EmptyPhotoError(ValidationError):
    """One uploaded photo part has no content."""

    def __init__(self, filename: str):
        super().__init__(
            message=f"Photo '{filename}' is empty.",
            field="photos",
            context={"filename": filename},
        )


class NotFoundError(ValentineError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    The storage layer signals "not found" with None; the service layer turns
    that into this exception so routes stay free of status-code logic.
    """

    def __init__(
        self,
        message: str = "The requested resource was not found.",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class UnsupportedImageError(ValentineError):
    """
    Raised when uploaded bytes cannot be decoded as an image.

    HTTP:    500 Internal Server Error (no dedicated client status exists
             for this failure in the public API)
    """

    def __init__(
        self,
        message: str = "Uploaded file could not be read as an image.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ValentineError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    Driver details (SQL, constraint names) go to `context` and the logs only.
    """

    def __init__(
        self,
        message: str = "A database error occurred.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageUnavailableError(DatabaseError):
    """There is no live connection to the surprise store."""

    def __init__(
        self,
        message: str = "Database not connected",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class WriteFailureError(DatabaseError):
    """The store rejected an insert."""

    def __init__(
        self,
        message: str = "Failed to save surprise",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(ValentineError):
    """Required configuration is missing; raised at startup only."""
