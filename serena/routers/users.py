from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from .. import auth_service
from ..auth_models import Principal
from ..db import Database
from ..deps import get_current_principal, get_db
from ..schemas import (
    ChangePasswordIn,
    DeleteAccountIn,
    ProfileUpdateIn,
    SetPasswordIn,
    UserCreateIn,
    UserOut,
    UserUpdateIn,
)

router = APIRouter(prefix="/users", tags=["users"])


# Perfil do próprio usuário (rotas fixas antes de /{user_id})

@router.get("/profile", response_model=UserOut)
def get_profile(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)) -> Any:
    return auth_service.get_user_by_id(db, principal.id)


@router.put("/profile")
def update_profile(
    payload: ProfileUpdateIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    u = auth_service.update_profile(db, principal, name=payload.name, email=payload.email)
    return {"message": "Perfil atualizado com sucesso", "user": UserOut.model_validate(u)}


@router.put("/change-password")
def change_password(
    payload: ChangePasswordIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    auth_service.change_password(
        db, principal, payload.current_password, payload.new_password, payload.confirm_password
    )
    return {"message": "Senha alterada com sucesso"}


@router.get("/stats")
def my_stats(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)) -> dict[str, Any]:
    return auth_service.user_stats(db, principal.id)


@router.delete("/account")
def delete_account(
    payload: DeleteAccountIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    auth_service.deactivate_account(db, principal, payload.password)
    return {"message": "Conta desativada com sucesso"}


# Administração (super_admin)

@router.get("/all", response_model=list[UserOut])
def list_users(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)) -> Any:
    return auth_service.list_users(db, principal)


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreateIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    u = auth_service.admin_create_user(db, principal, payload.name, payload.email, payload.password, payload.role)
    return {"message": "Usuário criado com sucesso", "user": UserOut.model_validate(u)}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdateIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    u = auth_service.admin_update_user(
        db,
        principal,
        user_id,
        name=payload.name,
        email=payload.email,
        role=payload.role,
        is_active=payload.is_active,
    )
    return {"message": "Usuário atualizado com sucesso", "user": UserOut.model_validate(u)}


@router.put("/{user_id}/password")
def set_user_password(
    user_id: int,
    payload: SetPasswordIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    auth_service.admin_set_password(db, principal, user_id, payload.new_password)
    return {"message": "Senha do usuário alterada com sucesso"}


@router.delete("/{user_id}")
def deactivate_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    auth_service.admin_deactivate_user(db, principal, user_id)
    return {"message": "Usuário desativado com sucesso"}


@router.get("/{user_id}/inspect")
def inspect_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    data = auth_service.inspect_user(db, principal, user_id)
    data["user"] = UserOut.model_validate(data["user"])
    return data
