from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from . import errors
from .auth_models import Principal
from .db import Base, Database
from .models import (
    Appointment,
    AppointmentStatus,
    Patient,
    Payment,
    TherapySession,
)
from .scheduling import check_status_transition, ensure_no_conflict
from .scoping import scope
from .time_utils import day_bounds, to_utc_naive

logger = structlog.get_logger(__name__)


# =========================
# Helper / DTO
# =========================
@dataclass(frozen=True)
class DeletionReport:
    sessions: int
    appointments: int
    payments: int

    @property
    def total(self) -> int:
        return self.sessions + self.appointments + self.payments

    def message(self) -> str:
        parts = []
        if self.sessions:
            parts.append(f"{self.sessions} sessão(ões)")
        if self.appointments:
            parts.append(f"{self.appointments} agendamento(s)")
        if self.payments:
            parts.append(f"{self.payments} pagamento(s)")
        if not parts:
            return "Paciente deletado com sucesso"
        return f"Paciente e {', '.join(parts)} associados foram deletados com sucesso"


def flat_row(obj: Base, **extra: Any) -> dict[str, Any]:
    """Versão 'flat' de uma linha ORM: dict serializável, sem lazy-load após o close."""
    row = {c.key: getattr(obj, c.key) for c in obj.__table__.columns}
    row.update(extra)
    return row


def _get_scoped(s: Session, principal: Principal, model: type[Base], obj_id: int, message: str):
    q = scope(select(model).where(model.id == obj_id), principal, model.user_id)
    obj = s.execute(q).scalar_one_or_none()
    if obj is None:
        raise errors.NotFoundError(message)
    return obj


def _resolve_patient(s: Session, principal: Principal, patient_id: int, owner_id: int | None = None) -> Patient:
    """
    Paciente visível para o principal. Com owner_id, exige também que pertença
    a esse dono (registros dependentes compartilham o dono do paciente).
    """
    patient = _get_scoped(s, principal, Patient, patient_id, "Paciente não encontrado")
    if owner_id is not None and patient.user_id != owner_id:
        raise errors.NotFoundError("Paciente não encontrado")
    return patient


def filter_by_date(q, column, start_date: date | None, end_date: date | None):
    lower, upper = day_bounds(start_date, end_date)
    if lower is not None:
        q = q.where(column >= lower)
    if upper is not None:
        q = q.where(column < upper)
    return q


def _assign(obj: Base, data: dict[str, Any], keep_if_none: tuple[str, ...] = ()) -> None:
    for key, value in data.items():
        if value is None and key in keep_if_none:
            continue
        setattr(obj, key, value)


# =========================
# Pacientes
# =========================
def _email_in_use(s: Session, owner_id: int, email: str, exclude_id: int | None = None) -> bool:
    q = select(Patient.id).where(Patient.user_id == owner_id, Patient.email == email)
    if exclude_id is not None:
        q = q.where(Patient.id != exclude_id)
    return s.execute(q.limit(1)).first() is not None


def list_patients(db: Database, principal: Principal) -> list[dict]:
    with db.session() as s:
        q = scope(select(Patient), principal, Patient.user_id).order_by(Patient.created_at.desc(), Patient.id.desc())
        return [flat_row(p) for p in s.scalars(q)]


def get_patient(db: Database, principal: Principal, patient_id: int) -> dict:
    with db.session() as s:
        return flat_row(_resolve_patient(s, principal, patient_id))


def search_patients(db: Database, principal: Principal, text: str) -> list[dict]:
    """Busca case-insensitive por substring em nome ou email."""
    needle = (text or "").strip().lower()
    with db.session() as s:
        q = select(Patient).where(
            or_(
                func.lower(Patient.name).contains(needle, autoescape=True),
                func.lower(Patient.email).contains(needle, autoescape=True),
            )
        )
        q = scope(q, principal, Patient.user_id).order_by(Patient.name.asc())
        return [flat_row(p) for p in s.scalars(q)]


def create_patient(db: Database, principal: Principal, data: dict[str, Any]) -> dict:
    data = dict(data)
    data["email"] = data["email"].strip().lower()
    if data.get("status") is None:
        data.pop("status", None)

    with db.session() as s:
        if _email_in_use(s, principal.id, data["email"]):
            raise errors.ConflictError("Já existe um paciente com este email")

        p = Patient(user_id=principal.id, **data)
        s.add(p)
        s.flush()
        logger.info("patient_created", patient_id=p.id, owner_id=p.user_id)
        return flat_row(p)


def update_patient(db: Database, principal: Principal, patient_id: int, data: dict[str, Any]) -> dict:
    data = dict(data)
    data["email"] = data["email"].strip().lower()

    with db.session() as s:
        p = _resolve_patient(s, principal, patient_id)
        if data["email"] != p.email and _email_in_use(s, p.user_id, data["email"], exclude_id=p.id):
            raise errors.ConflictError("Já existe um paciente com este email")

        _assign(p, data, keep_if_none=("status",))
        s.flush()
        return flat_row(p)


def _count_dependents(s: Session, patient_id: int) -> DeletionReport:
    def count(model) -> int:
        return s.scalar(select(func.count()).select_from(model).where(model.patient_id == patient_id)) or 0

    return DeletionReport(
        sessions=count(TherapySession),
        appointments=count(Appointment),
        payments=count(Payment),
    )


def patient_record_counts(db: Database, principal: Principal, patient_id: int) -> DeletionReport:
    with db.session() as s:
        _resolve_patient(s, principal, patient_id)
        return _count_dependents(s, patient_id)


def delete_patient(db: Database, principal: Principal, patient_id: int) -> DeletionReport:
    """
    Exclusão em cascata: sessões -> agendamentos -> pagamentos -> paciente.
    Tudo numa única transação: qualquer falha desfaz todas as exclusões.
    Dependentes são contados por patient_id (mesmo dono do paciente por construção).
    """
    with db.session() as s:
        patient = _resolve_patient(s, principal, patient_id)
        report = _count_dependents(s, patient.id)

        if report.sessions:
            s.execute(delete(TherapySession).where(TherapySession.patient_id == patient.id))
        if report.appointments:
            s.execute(delete(Appointment).where(Appointment.patient_id == patient.id))
        if report.payments:
            s.execute(delete(Payment).where(Payment.patient_id == patient.id))

        s.execute(delete(Patient).where(Patient.id == patient.id))

    logger.info(
        "patient_deleted",
        patient_id=patient_id,
        by=principal.id,
        sessions=report.sessions,
        appointments=report.appointments,
        payments=report.payments,
    )
    return report


# =========================
# Sessões
# =========================
def _session_query():
    return select(TherapySession, Patient.name.label("patient_name")).join(
        Patient, TherapySession.patient_id == Patient.id
    )


def _session_by_id(s: Session, principal: Principal, session_id: int) -> dict:
    q = scope(_session_query().where(TherapySession.id == session_id), principal, TherapySession.user_id)
    row = s.execute(q).first()
    if row is None:
        raise errors.NotFoundError("Sessão não encontrada")
    return flat_row(row[0], patient_name=row.patient_name)


def list_sessions(
    db: Database,
    principal: Principal,
    patient_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    type: str | None = None,
) -> list[dict]:
    with db.session() as s:
        q = scope(_session_query(), principal, TherapySession.user_id)
        if patient_id is not None:
            q = q.where(TherapySession.patient_id == patient_id)
        if type:
            q = q.where(TherapySession.type == type)
        q = filter_by_date(q, TherapySession.date, start_date, end_date)
        rows = s.execute(q.order_by(TherapySession.date.desc(), TherapySession.id.desc())).all()
        return [flat_row(r[0], patient_name=r.patient_name) for r in rows]


def get_session(db: Database, principal: Principal, session_id: int) -> dict:
    with db.session() as s:
        return _session_by_id(s, principal, session_id)


def create_session(db: Database, principal: Principal, data: dict[str, Any]) -> dict:
    data = dict(data)
    data["date"] = to_utc_naive(data["date"])

    with db.session() as s:
        patient = _resolve_patient(s, principal, data["patient_id"])
        ts = TherapySession(**data, user_id=patient.user_id)
        s.add(ts)
        s.flush()
        return _session_by_id(s, principal, ts.id)


def update_session(db: Database, principal: Principal, session_id: int, data: dict[str, Any]) -> dict:
    data = dict(data)
    data["date"] = to_utc_naive(data["date"])

    with db.session() as s:
        ts = _get_scoped(s, principal, TherapySession, session_id, "Sessão não encontrada")
        _resolve_patient(s, principal, data["patient_id"], owner_id=ts.user_id)
        _assign(ts, data)
        s.flush()
        return _session_by_id(s, principal, ts.id)


def delete_session(db: Database, principal: Principal, session_id: int) -> None:
    with db.session() as s:
        ts = _get_scoped(s, principal, TherapySession, session_id, "Sessão não encontrada")
        # pagamentos permanecem, só perdem a referência
        s.execute(update(Payment).where(Payment.session_id == ts.id).values(session_id=None))
        s.execute(delete(TherapySession).where(TherapySession.id == ts.id))


# =========================
# Agendamentos
# =========================
def _appointment_query():
    return select(Appointment, Patient.name.label("patient_name")).join(
        Patient, Appointment.patient_id == Patient.id
    )


def _appointment_by_id(s: Session, principal: Principal, appointment_id: int) -> dict:
    q = scope(_appointment_query().where(Appointment.id == appointment_id), principal, Appointment.user_id)
    row = s.execute(q).first()
    if row is None:
        raise errors.NotFoundError("Agendamento não encontrado")
    return flat_row(row[0], patient_name=row.patient_name)


def list_appointments(
    db: Database,
    principal: Principal,
    patient_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    status: str | None = None,
    type: str | None = None,
) -> list[dict]:
    with db.session() as s:
        q = scope(_appointment_query(), principal, Appointment.user_id)
        if patient_id is not None:
            q = q.where(Appointment.patient_id == patient_id)
        if status:
            q = q.where(Appointment.status == status)
        if type:
            q = q.where(Appointment.type == type)
        q = filter_by_date(q, Appointment.date, start_date, end_date)
        rows = s.execute(q.order_by(Appointment.date.asc(), Appointment.id.asc())).all()
        return [flat_row(r[0], patient_name=r.patient_name) for r in rows]


def get_appointment(db: Database, principal: Principal, appointment_id: int) -> dict:
    with db.session() as s:
        return _appointment_by_id(s, principal, appointment_id)


def create_appointment(
    db: Database, principal: Principal, data: dict[str, Any], conflict_mode: str = "legacy"
) -> dict:
    """
    Caso de uso: criar agendamento.
    - paciente precisa estar no escopo do principal
    - o agendamento pertence ao dono do paciente
    - conflito de horário -> 409, nada é gravado
    """
    data = dict(data)
    data["date"] = to_utc_naive(data["date"])
    if data.get("status") is None:
        data["status"] = AppointmentStatus.AGENDADO
    if data.get("reminder_sent") is None:
        data["reminder_sent"] = False

    with db.session() as s:
        patient = _resolve_patient(s, principal, data["patient_id"])
        if data["status"] != AppointmentStatus.CANCELADO:
            ensure_no_conflict(s, patient.user_id, data["date"], data["duration"], mode=conflict_mode)

        app = Appointment(**data, user_id=patient.user_id)
        s.add(app)
        s.flush()
        logger.info("appointment_created", appointment_id=app.id, owner_id=app.user_id)
        return _appointment_by_id(s, principal, app.id)


def update_appointment(
    db: Database, principal: Principal, appointment_id: int, data: dict[str, Any], conflict_mode: str = "legacy"
) -> dict:
    data = dict(data)
    data["date"] = to_utc_naive(data["date"])

    with db.session() as s:
        app = _get_scoped(s, principal, Appointment, appointment_id, "Agendamento não encontrado")
        _resolve_patient(s, principal, data["patient_id"], owner_id=app.user_id)

        new_status = data.get("status") or app.status
        check_status_transition(app.status, new_status)
        if new_status != AppointmentStatus.CANCELADO:
            ensure_no_conflict(
                s, app.user_id, data["date"], data["duration"], exclude_appointment_id=app.id, mode=conflict_mode
            )

        _assign(app, data, keep_if_none=("status", "reminder_sent"))
        s.flush()
        return _appointment_by_id(s, principal, app.id)


def delete_appointment(db: Database, principal: Principal, appointment_id: int) -> None:
    """Remove o agendamento (para desmarcar sem apagar use status=cancelado)."""
    with db.session() as s:
        app = _get_scoped(s, principal, Appointment, appointment_id, "Agendamento não encontrado")
        s.execute(delete(Appointment).where(Appointment.id == app.id))


# =========================
# Pagamentos
# =========================
def _payment_query():
    return select(Payment, Patient.name.label("patient_name")).join(Patient, Payment.patient_id == Patient.id)


def _payment_by_id(s: Session, principal: Principal, payment_id: int) -> dict:
    q = scope(_payment_query().where(Payment.id == payment_id), principal, Payment.user_id)
    row = s.execute(q).first()
    if row is None:
        raise errors.NotFoundError("Pagamento não encontrado")
    return flat_row(row[0], patient_name=row.patient_name)


def _normalize_payment(data: dict[str, Any]) -> dict[str, Any]:
    data = dict(data)
    data["date"] = to_utc_naive(data["date"])
    data["amount"] = float(data["amount"])
    return data


def _check_session_link(s: Session, principal: Principal, session_id: int | None, owner_id: int) -> None:
    if session_id is None:
        return
    ts = _get_scoped(s, principal, TherapySession, session_id, "Sessão não encontrada")
    if ts.user_id != owner_id:
        raise errors.NotFoundError("Sessão não encontrada")


def list_payments(
    db: Database,
    principal: Principal,
    patient_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    status: str | None = None,
    method: str | None = None,
) -> list[dict]:
    with db.session() as s:
        q = scope(_payment_query(), principal, Payment.user_id)
        if patient_id is not None:
            q = q.where(Payment.patient_id == patient_id)
        if status:
            q = q.where(Payment.status == status)
        if method:
            q = q.where(Payment.method == method)
        q = filter_by_date(q, Payment.date, start_date, end_date)
        rows = s.execute(q.order_by(Payment.date.desc(), Payment.id.desc())).all()
        return [flat_row(r[0], patient_name=r.patient_name) for r in rows]


def get_payment(db: Database, principal: Principal, payment_id: int) -> dict:
    with db.session() as s:
        return _payment_by_id(s, principal, payment_id)


def create_payment(db: Database, principal: Principal, data: dict[str, Any]) -> dict:
    data = _normalize_payment(data)
    if data.get("status") is None:
        data.pop("status", None)

    with db.session() as s:
        patient = _resolve_patient(s, principal, data["patient_id"])
        _check_session_link(s, principal, data.get("session_id"), patient.user_id)

        pay = Payment(**data, user_id=patient.user_id)
        s.add(pay)
        s.flush()
        return _payment_by_id(s, principal, pay.id)


def update_payment(db: Database, principal: Principal, payment_id: int, data: dict[str, Any]) -> dict:
    data = _normalize_payment(data)

    with db.session() as s:
        pay = _get_scoped(s, principal, Payment, payment_id, "Pagamento não encontrado")
        _resolve_patient(s, principal, data["patient_id"], owner_id=pay.user_id)
        _check_session_link(s, principal, data.get("session_id"), pay.user_id)

        _assign(pay, data, keep_if_none=("status",))
        s.flush()
        return _payment_by_id(s, principal, pay.id)


def delete_payment(db: Database, principal: Principal, payment_id: int) -> None:
    with db.session() as s:
        pay = _get_scoped(s, principal, Payment, payment_id, "Pagamento não encontrado")
        s.execute(delete(Payment).where(Payment.id == pay.id))
