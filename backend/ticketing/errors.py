# Overview: Exception taxonomy for the console core.

"""
Console error taxonomy.

Every error the console raises on purpose derives from ConsoleError and
carries the HTTP status the API layer answers with. Permission and
validation errors are raised before any backend write; remote errors carry
the backend's own message.
"""

from __future__ import annotations


class ConsoleError(Exception):
    """Base class for expected, user-reportable console failures."""
    status_code = 400

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        payload.update(self.extra)
        return payload


class AuthError(ConsoleError):
    """Sign-in / sign-up / session failures. ``code`` selects the friendly message."""
    status_code = 401

    def __init__(self, message: str, code: str = "auth_failed", status_code: int | None = None, **extra):
        super().__init__(message, code=code, **extra)
        self.code = code
        if status_code is not None:
            self.status_code = status_code


class AccountDeactivatedError(ConsoleError):
    status_code = 403


class PermissionDeniedError(ConsoleError):
    """Local permission check failed; never reaches the backend."""
    status_code = 403

    def __init__(self, message: str, category: str | None = None, action: str | None = None):
        super().__init__(message, category=category, action=action)
        self.category = category
        self.action = action


class ValidationError(ConsoleError):
    """400-level input problem."""


class NotFoundError(ConsoleError):
    status_code = 404


class RemoteReadError(ConsoleError):
    """Backend read failed (one dataset of a load, or a lookup)."""
    status_code = 502


class RemoteWriteError(ConsoleError):
    """Backend rejected a write; local state is left unchanged."""
    status_code = 400


class PartialLoadError(ConsoleError):
    """Every dataset of a load failed; nothing could be refreshed."""
    status_code = 502


class DocumentError(ConsoleError):
    pass
