"""
Authentification : capacité injectée "vérifier des identifiants".

Aujourd'hui un seul utilisateur, lu depuis la config (AUTH_EMAIL /
AUTH_PASSWORD) ; un vrai store pourra implémenter CredentialStore
sans toucher au reste.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Protocol

from oficina.app.core.config import Settings, get_settings
from oficina.services.errors import ValidationFailed
from oficina.services.normalizer import normalize_text
from oficina.services.results import ServiceResult, guarded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: str
    name: str
    email: str


class CredentialStore(Protocol):
    def verify(self, email: str, password: str) -> Identity | None: ...


class StaticCredentialStore:
    def __init__(self, users: Iterable[tuple[Identity, str]] = ()):
        self._users = {identity.email.lower(): (identity, secret) for identity, secret in users}

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "StaticCredentialStore":
        settings = settings or get_settings()
        if not settings.auth_email or not settings.auth_password:
            logger.warning("auth.no_credentials_configured")
            return cls()
        identity = Identity(id="1", name=settings.auth_name, email=settings.auth_email)
        return cls([(identity, settings.auth_password)])

    def verify(self, email: str, password: str) -> Identity | None:
        entry = self._users.get(email.lower())
        if entry is None:
            return None
        identity, secret = entry
        if not hmac.compare_digest(secret.encode("utf-8"), password.encode("utf-8")):
            return None
        return identity


@guarded("login")
def login(store: CredentialStore, email: Any, password: Any) -> ServiceResult:
    email_value = normalize_text(email)
    if not email_value:
        raise ValidationFailed("Email is required")
    if password is None or str(password) == "":
        raise ValidationFailed("Password is required")

    identity = store.verify(email_value, str(password))
    if identity is None:
        logger.info("auth.login_rejected", extra={"email": email_value})
        return ServiceResult.fail("Invalid credentials", code="unauthorized")

    logger.info("auth.login", extra={"user_id": identity.id})
    return ServiceResult.ok("Login successful", asdict(identity))
