from __future__ import annotations

from fastapi import APIRouter, Depends

from .. import errors
from ..auth_models import Principal
from ..auth_security import create_access_token
from ..auth_service import authenticate, get_user_by_id
from ..config import Settings
from ..db import Database
from ..deps import get_current_principal, get_db, get_settings
from ..schemas import LoginIn, LoginOut, UserOut, VerifyOut

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> LoginOut:
    u = authenticate(db, payload.email, payload.password)
    token = create_access_token(Principal.from_user(u), settings)
    return LoginOut(token=token, user=UserOut.model_validate(u))


@router.post("/register")
def register() -> None:
    # cadastro só via super_admin (POST /api/users/create)
    raise errors.AuthorizationError("Registro público desabilitado. Contate o administrador do sistema.")


@router.get("/verify", response_model=VerifyOut)
def verify(
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> VerifyOut:
    return VerifyOut(user=UserOut.model_validate(get_user_by_id(db, principal.id)))
