"""
LectureSnap Backend - Custom Exception Hierarchy
==================================================

What:  Application-specific exceptions for each error scenario of the
       capture -> upload -> generate -> persist pipeline.
How:   Each exception class carries a user-facing message and an optional
       context dict. Global exception handlers (registered in main.py) catch
       these and return structured JSON error responses.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    LectureSnapError (base)
    ├── ValidationError              → 400 Bad Request (client can fix)
    ├── AuthenticationError          → 401 Unauthorized
    ├── NotFoundError                → 404 Not Found
    ├── ConfigurationError           → 503 (missing / invalid model credential)
    ├── GenerationError              → 503 (every model in the fallback list failed)
    ├── MalformedOutputError         → never leaves the generation loop
    ├── StorageError                 → 500
    │   ├── StoragePermissionError   (storage rules / filesystem permissions)
    │   └── StorageBucketError       (storage location missing or misconfigured)
    ├── PersistenceError             → 500
    │   ├── PersistencePermissionError (database refuses read/write)
    │   └── PersistenceSchemaError     (table or index missing: run migrations)
    └── DatabaseError                → 500 (generic, details logged only)

Storage and persistence errors carry remediation guidance in their message,
so their handlers return the message as-is. DatabaseError is the generic
fallback and is always answered with a fixed message.
"""

from typing import Any, Dict, Optional


class LectureSnapError(Exception):
    """
    Base exception for all LectureSnap application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(LectureSnapError):
    """
    Raised when client input fails validation.

    When:    No pages, too many pages, unsupported file type, empty or oversized
             file, undecodable image, bad quiz selection.
    HTTP:    400 Bad Request
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


class AuthenticationError(LectureSnapError):
    """
    Raised when the request carries no usable user identity.

    Identity is established upstream; this service only reads the user id
    header the identity provider sets.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Sign in to continue.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(LectureSnapError):
    """
    Raised when a requested resource does not exist (or is not the caller's).

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConfigurationError(LectureSnapError):
    """
    Raised when the model service credential is missing or rejected.

    Distinct from GenerationError so the client can tell an operator problem
    ("set GEMINI_API_KEY") apart from a model outage.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Gemini API Key is missing. Please set GEMINI_API_KEY in the server environment.",
        code: str = "configuration_error",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.code = code


class GenerationError(LectureSnapError):
    """
    Raised when note generation did not produce a usable result.

    When:    Every model identifier in the fallback list failed, or the
             payload the model returned cannot be stored as a Lecture.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "AI note generation is temporarily unavailable",
        code: str = "generation_failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.code = code


class MalformedOutputError(LectureSnapError):
    """
    Raised by the output parser when model text is not a JSON object.

    Handled inside the fallback loop exactly like a failed model call: the
    raw text goes to the log and the next model identifier is tried.
    """

    def __init__(
        self,
        message: str = "Model response was not valid JSON",
        raw_text: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.raw_text = raw_text


class StorageError(LectureSnapError):
    """
    Raised when a page image cannot be stored or resolved.

    Aborts lecture creation before any model call.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Storage upload failed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoragePermissionError(StorageError):
    """The storage location exists but the server may not write to it."""

    def __init__(
        self,
        message: str = (
            "Storage Permission Error: the server is not allowed to write uploaded images. "
            "Grant the backend process write access to STORAGE_ROOT."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageBucketError(StorageError):
    """The configured storage location does not exist or is not a directory."""

    def __init__(
        self,
        message: str = (
            "Storage Bucket Error: the configured storage location was not found. "
            "Check STORAGE_ROOT in your environment."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistenceError(LectureSnapError):
    """
    Raised when the document store refuses an operation in a way an operator
    can fix.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Saving or loading lectures failed.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistencePermissionError(PersistenceError):
    """The database user lacks read or write permission on the lectures table."""

    def __init__(
        self,
        message: str = (
            "Database Permission Error: the database is blocking reads or writes of lectures. "
            "Grant the application's database user SELECT, INSERT and DELETE on the lectures table."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistenceSchemaError(PersistenceError):
    """The lectures table or its index is missing."""

    def __init__(
        self,
        message: str = (
            "Index Error: the lectures table or its (user_id, created_at) index is missing. "
            "Run `alembic upgrade head` to create it."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(LectureSnapError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic. Detailed error info
    is logged server-side only.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
