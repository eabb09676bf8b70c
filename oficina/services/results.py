from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from oficina.services.errors import ServiceError, integrity_code

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., "ServiceResult"])


@dataclass
class ServiceResult:
    success: bool
    message: str
    data: Any = None
    code: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, data: Any = None, **extra: Any) -> "ServiceResult":
        return cls(success=True, message=message, data=data, extra=extra)

    @classmethod
    def fail(cls, message: str, *, code: str | None = None, **extra: Any) -> "ServiceResult":
        return cls(success=False, message=message, code=code, extra=extra)

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        if self.code is not None:
            out["code"] = self.code
        out.update(self.extra)
        return out


def guarded(action: str) -> Callable[[F], F]:
    """
    Frontière d'une opération publique : aucune exception ne sort.

    Le rollback a déjà eu lieu dans l'UnitOfWork (sortie du `with`)
    quand on arrive ici.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> ServiceResult:
            try:
                return fn(*args, **kwargs)
            except ServiceError as exc:
                logger.info("%s.rejected", action, extra={"code": exc.code, "reason": exc.message})
                return ServiceResult.fail(exc.message, code=exc.code)
            except IntegrityError as exc:
                code = integrity_code(exc)
                logger.warning("%s.integrity_error", action, extra={"code": code})
                return ServiceResult.fail(f"Failed to {action}: integrity violation", code=code)
            except SQLAlchemyError:
                logger.exception("%s.database_error", action)
                return ServiceResult.fail(f"Failed to {action}", code="database_error")
            except Exception:
                logger.exception("%s.unexpected_error", action)
                return ServiceResult.fail(f"Failed to {action}", code="internal_error")

        return wrapper  # type: ignore[return-value]

    return decorator
