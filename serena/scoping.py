"""
Filtro por proprietário (row-level scoping).

Toda leitura, atualização e exclusão passa por `scope()` antes de qualquer
verificação de existência: uma linha fora do escopo é tratada como
inexistente (404), nunca como proibida (403).
"""
from __future__ import annotations

from typing import TypeVar

from sqlalchemy import Delete, Select, Update
from sqlalchemy.orm import InstrumentedAttribute

from . import errors
from .auth_models import Principal, Role

Stmt = TypeVar("Stmt", Select, Update, Delete)


def scope(query: Stmt, principal: Principal, owner_column: InstrumentedAttribute) -> Stmt:
    """super_admin vê tudo; os demais só as linhas com owner_column == principal.id."""
    if principal.is_super_admin:
        return query
    return query.where(owner_column == principal.id)


def require_role(principal: Principal, *roles: Role) -> None:
    if principal.role not in roles:
        raise errors.AuthorizationError()
