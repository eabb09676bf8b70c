"""
Exceptions internes aux services.

Elles ne sortent jamais d'une opération publique : `results.guarded`
les convertit en ServiceResult(success=False, code=...).
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError


class ServiceError(Exception):
    code = "error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationFailed(ServiceError):
    code = "validation_error"


class NotFound(ServiceError):
    code = "not_found"


def integrity_code(exc: IntegrityError) -> str:
    """SQLSTATE du driver (psycopg 3: sqlstate, psycopg2: pgcode)."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return str(code) if code else "integrity_error"
