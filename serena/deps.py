from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from .auth_models import Principal
from .auth_service import resolve_principal
from .config import Settings
from .db import Database

# OAuth2 Bearer (Authorization: Bearer <token>); a ausência do token vira MissingToken
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_principal(
    token: str | None = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Principal:
    # proteção extra: remove espaços / aspas acidentais
    if token:
        token = token.strip().strip('"').strip("'")
    return resolve_principal(db, token, settings)
