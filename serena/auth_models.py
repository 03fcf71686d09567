from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base
from .time_utils import utcnow


class Role(str, enum.Enum):
    PSYCHOLOGIST = "psychologist"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class User(Base):
    """
    Usuário da aplicação (psicólogo/admin).
    - email único
    - password_hash via passlib
    - is_active controla o acesso (soft delete)
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        default=Role.PSYCHOLOGIST,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"User({self.email}, {self.role.value})"


@dataclass(frozen=True)
class Principal:
    """Identidade autenticada da requisição (derivada do token + linha do usuário)."""
    id: int
    email: str
    name: str
    role: Role

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, email=user.email, name=user.name, role=Role(user.role))
