# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by services and routes.

Every error carries the HTTP status it maps to. Routes never build error
responses by hand; the handler in ``ecofinds.app`` renders any ``AppError`` as
``{"error": message}``.
"""

from __future__ import annotations


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    """Missing, malformed, badly signed or expired bearer token.

    ``reason`` is one of ``REASONS``; it is logged but never changes the
    response the client sees.
    """

    status_code = 401

    MISSING = "missing"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    BAD_CREDENTIALS = "bad_credentials"

    REASONS = (MISSING, MALFORMED, BAD_SIGNATURE, EXPIRED, BAD_CREDENTIALS)

    def __init__(self, reason: str, message: str = "Authentication failed.") -> None:
        if reason not in self.REASONS:
            raise ValueError(f"Unknown auth failure reason: {reason!r}")
        super().__init__(message)
        self.reason = reason


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class InternalError(AppError):
    status_code = 500
