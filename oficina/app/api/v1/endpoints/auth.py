from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from oficina.app.api.deps import get_credential_store, unwrap
from oficina.services.auth import CredentialStore, login

router = APIRouter(prefix="/auth")


class LoginIn(BaseModel):
    email: str | None = None
    password: str | None = None


@router.post("/login")
def login_user(payload: LoginIn, store: CredentialStore = Depends(get_credential_store)):
    return unwrap(login(store, payload.email, payload.password))
