from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from . import errors
from .auth_models import Principal
from .config import Settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    if not isinstance(password, str) or not password:
        raise errors.ValidationError("Senha é obrigatória")
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # hash corrompido / formato desconhecido
        return False


def create_access_token(principal: Principal, settings: Settings, now: datetime | None = None) -> str:
    """
    Gera o JWT com {userId, email, role}.
    Usa datetime timezone-aware para evitar offset/bug em timestamps.
    """
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(seconds=settings.jwt_expire_seconds)

    payload: dict[str, Any] = {
        "sub": str(principal.id),
        "userId": principal.id,
        "email": principal.email,
        "role": principal.role.value,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    """Valida assinatura e expiração; levanta ExpiredToken / InvalidToken."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise errors.ExpiredToken()
    except JWTError:
        raise errors.InvalidToken()

    if not isinstance(payload.get("userId"), int):
        raise errors.InvalidToken()
    return payload


def get_user_id(token: str, settings: Settings) -> int:
    return decode_token(token, settings)["userId"]
