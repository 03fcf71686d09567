from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, select

from . import errors
from .auth_models import Principal, Role, User
from .auth_security import get_user_id, hash_password, verify_password
from .config import Settings
from .db import Database
from .models import Appointment, Patient, Payment, PaymentStatus, TherapySession
from .scoping import require_role

logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# =========================
# Autenticação
# =========================
def authenticate(db: Database, email: str, password: str) -> User:
    """
    Email inexistente e senha errada falham da mesma forma (sem enumeração de usuários).
    Conta desativada só é revelada com a senha correta.
    """
    email = normalize_email(email)
    with db.session() as s:
        u = s.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if u is None or not verify_password(password, u.password_hash):
            logger.info("login_failed", email=email)
            raise errors.InvalidCredentials()
        if not u.is_active:
            logger.info("login_disabled_account", user_id=u.id)
            raise errors.AccountDisabled()
        logger.info("login_succeeded", user_id=u.id)
        return u


def resolve_principal(db: Database, token: str | None, settings: Settings) -> Principal:
    """
    Valida o token e relê o usuário a cada requisição:
    o token sozinho não prova que a conta continua válida.
    """
    if not token:
        raise errors.MissingToken()

    user_id = get_user_id(token, settings)
    with db.session() as s:
        u = s.get(User, user_id)
        if u is None:
            raise errors.UserNotFound()
        if not u.is_active:
            raise errors.AccountDisabled()
        return Principal.from_user(u)


# =========================
# CRUD usuários
# =========================
def _email_taken(s, email: str, exclude_id: int | None = None) -> bool:
    q = select(User.id).where(User.email == email)
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    return s.execute(q.limit(1)).first() is not None


def create_user(db: Database, name: str, email: str, password: str, role: Role = Role.PSYCHOLOGIST) -> User:
    email = normalize_email(email)
    name = (name or "").strip()
    if not name or not email or not password:
        raise errors.ValidationError("Nome, email e senha são obrigatórios")

    with db.session() as s:
        if _email_taken(s, email):
            raise errors.ConflictError("Email já cadastrado")

        u = User(name=name, email=email, password_hash=hash_password(password), role=role, is_active=True)
        s.add(u)
        s.flush()
        logger.info("user_created", user_id=u.id, role=role.value)
        return u


def get_user_by_id(db: Database, user_id: int) -> User:
    with db.session() as s:
        u = s.get(User, user_id)
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        return u


def ensure_super_admin(db: Database, email: str, password: str, name: str = "Super Admin") -> tuple[User, bool]:
    """
    Bootstrap idempotente do primeiro super_admin.
    Se o email já existe, apenas promove o papel. Retorna (usuário, criado?).
    """
    email = normalize_email(email)
    with db.session() as s:
        u = s.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if u is not None:
            if u.role != Role.SUPER_ADMIN:
                u.role = Role.SUPER_ADMIN
                logger.info("user_promoted_super_admin", user_id=u.id)
            return u, False

    return create_user(db, name, email, password, role=Role.SUPER_ADMIN), True


def list_all_users(db: Database) -> list[User]:
    """Sem checagem de papel: uso restrito à CLI de operação."""
    with db.session() as s:
        return list(s.scalars(select(User).order_by(User.id.asc())))


def set_active(db: Database, email: str, active: bool) -> User:
    email = normalize_email(email)
    with db.session() as s:
        u = s.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        u.is_active = active
        logger.info("user_active_changed", user_id=u.id, active=active)
        return u


# =========================
# Perfil (próprio usuário)
# =========================
def update_profile(db: Database, principal: Principal, name: str | None = None, email: str | None = None) -> User:
    with db.session() as s:
        u = s.get(User, principal.id)
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        if name:
            u.name = name.strip()
        if email:
            email = normalize_email(email)
            if _email_taken(s, email, exclude_id=u.id):
                raise errors.ConflictError("Email já está em uso por outro usuário")
            u.email = email
        s.flush()
        return u


def change_password(
    db: Database, principal: Principal, current_password: str, new_password: str, confirm_password: str
) -> None:
    if new_password != confirm_password:
        raise errors.ValidationError("Confirmação de senha não confere")

    with db.session() as s:
        u = s.get(User, principal.id)
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        if not verify_password(current_password, u.password_hash):
            raise errors.AuthenticationError("Senha atual incorreta")
        u.password_hash = hash_password(new_password)
        logger.info("password_changed", user_id=u.id)


def deactivate_account(db: Database, principal: Principal, password: str) -> None:
    """Soft delete da própria conta (exige a senha)."""
    if not password:
        raise errors.ValidationError("Senha é obrigatória para deletar a conta")

    with db.session() as s:
        u = s.get(User, principal.id)
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        if not verify_password(password, u.password_hash):
            raise errors.AuthenticationError("Senha incorreta")
        u.is_active = False
        logger.info("account_deactivated", user_id=u.id)


def user_stats(db: Database, user_id: int) -> dict[str, Any]:
    with db.session() as s:
        def count(model) -> int:
            return s.scalar(select(func.count()).select_from(model).where(model.user_id == user_id)) or 0

        revenue = s.scalar(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.user_id == user_id, Payment.status == PaymentStatus.PAGO
            )
        )
        return {
            "patients": count(Patient),
            "sessions": count(TherapySession),
            "appointments": count(Appointment),
            "payments": count(Payment),
            "totalRevenue": float(revenue or 0),
        }


# =========================
# Administração (apenas super_admin)
# =========================
def list_users(db: Database, principal: Principal) -> list[User]:
    require_role(principal, Role.SUPER_ADMIN)
    with db.session() as s:
        return list(s.scalars(select(User).order_by(User.created_at.desc(), User.id.desc())))


def admin_create_user(db: Database, principal: Principal, name: str, email: str, password: str, role: Role) -> User:
    require_role(principal, Role.SUPER_ADMIN)
    return create_user(db, name, email, password, role=role)


def admin_update_user(
    db: Database,
    principal: Principal,
    user_id: int,
    name: str | None = None,
    email: str | None = None,
    role: Role | None = None,
    is_active: bool | None = None,
) -> User:
    require_role(principal, Role.SUPER_ADMIN)
    with db.session() as s:
        u = s.get(User, user_id)
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        if u.id == principal.id and is_active is False:
            raise errors.AuthorizationError("Não é possível desativar seu próprio usuário super_admin")

        if name:
            u.name = name.strip()
        if email:
            email = normalize_email(email)
            if _email_taken(s, email, exclude_id=u.id):
                raise errors.ConflictError("Email já está em uso por outro usuário")
            u.email = email
        if role is not None:
            u.role = role
        if is_active is not None:
            u.is_active = is_active
        s.flush()
        logger.info("user_updated", user_id=u.id, by=principal.id)
        return u


def admin_set_password(db: Database, principal: Principal, user_id: int, new_password: str) -> None:
    require_role(principal, Role.SUPER_ADMIN)
    with db.session() as s:
        u = s.get(User, user_id)
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        u.password_hash = hash_password(new_password)
        logger.info("password_reset", user_id=u.id, by=principal.id)


def admin_deactivate_user(db: Database, principal: Principal, user_id: int) -> None:
    require_role(principal, Role.SUPER_ADMIN)
    with db.session() as s:
        u = s.get(User, user_id)
        if u is None:
            raise errors.NotFoundError("Usuário não encontrado")
        if u.id == principal.id:
            raise errors.AuthorizationError("Não é possível deletar seu próprio usuário super_admin")
        u.is_active = False
        logger.info("user_deactivated", user_id=u.id, by=principal.id)


def inspect_user(db: Database, principal: Principal, user_id: int) -> dict[str, Any]:
    require_role(principal, Role.SUPER_ADMIN)
    u = get_user_by_id(db, user_id)
    stats = user_stats(db, user_id)

    with db.session() as s:
        recent_patients = s.execute(
            select(Patient.id, Patient.name, Patient.email, Patient.phone, Patient.created_at)
            .where(Patient.user_id == user_id)
            .order_by(Patient.created_at.desc(), Patient.id.desc())
            .limit(5)
        ).all()
        recent_sessions = s.execute(
            select(
                TherapySession.id,
                TherapySession.patient_id,
                TherapySession.date,
                TherapySession.duration,
                TherapySession.type,
            )
            .where(TherapySession.user_id == user_id)
            .order_by(TherapySession.date.desc())
            .limit(5)
        ).all()

    return {
        "user": u,
        "stats": stats,
        "recentPatients": [
            {"id": r.id, "name": r.name, "email": r.email, "phone": r.phone, "createdAt": r.created_at}
            for r in recent_patients
        ],
        "recentSessions": [
            {"id": r.id, "patientId": r.patient_id, "date": r.date, "duration": r.duration, "type": r.type.value}
            for r in recent_sessions
        ],
    }
