"""
Conflito de horário e estados do agendamento.

Modo "legacy" (padrão): existe conflito se algum agendamento não cancelado do
mesmo profissional começa estritamente dentro de
(início_proposto - duração_proposta, início_proposto + duração_proposta).
O raio usa só a duração PROPOSTA: um agendamento longo que começou antes da
janela não é detectado.

Modo "overlap": sobreposição real de intervalos, usando a duração de cada
agendamento existente. Ativado com CONFLICT_WINDOW=overlap.
"""
from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import errors
from .auth_models import User
from .models import Appointment, AppointmentStatus

logger = structlog.get_logger(__name__)

MAX_DURATION_MINUTES = 180

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.AGENDADO: frozenset({AppointmentStatus.CONFIRMADO, AppointmentStatus.CANCELADO}),
    AppointmentStatus.CONFIRMADO: frozenset({AppointmentStatus.REALIZADO, AppointmentStatus.CANCELADO}),
    AppointmentStatus.REALIZADO: frozenset(),
    AppointmentStatus.CANCELADO: frozenset(),
}


def check_status_transition(current: AppointmentStatus, new: AppointmentStatus) -> None:
    current, new = AppointmentStatus(current), AppointmentStatus(new)
    if new == current:
        return
    if new not in ALLOWED_TRANSITIONS[current]:
        raise errors.ValidationError(
            "Transição de status inválida",
            details={"from": current.value, "to": new.value},
        )


def lock_owner_schedule(s: Session, owner_id: int) -> None:
    """
    SELECT ... FOR UPDATE na linha do profissional: serializa reservas
    concorrentes do mesmo dono até o commit (no-op no SQLite).
    """
    s.execute(select(User.id).where(User.id == owner_id).with_for_update())


def has_conflict(
    s: Session,
    owner_id: int,
    proposed_start: datetime,
    duration_minutes: int,
    exclude_appointment_id: int | None = None,
    mode: str = "legacy",
) -> bool:
    proposed_end = proposed_start + timedelta(minutes=duration_minutes)

    q = select(Appointment.id, Appointment.date, Appointment.duration).where(
        Appointment.user_id == owner_id,
        Appointment.status != AppointmentStatus.CANCELADO,
        Appointment.date < proposed_end,
    )
    if exclude_appointment_id is not None:
        q = q.where(Appointment.id != exclude_appointment_id)

    if mode == "legacy":
        q = q.where(Appointment.date > proposed_start - timedelta(minutes=duration_minutes))
        return s.execute(q.limit(1)).first() is not None

    if mode != "overlap":
        raise ValueError(f"modo de conflito desconhecido: {mode!r}")

    # candidatos: nenhum agendamento válido dura mais que MAX_DURATION_MINUTES
    q = q.where(Appointment.date > proposed_start - timedelta(minutes=MAX_DURATION_MINUTES))
    for row in s.execute(q):
        if row.date + timedelta(minutes=row.duration) > proposed_start:
            return True
    return False


def ensure_no_conflict(
    s: Session,
    owner_id: int,
    proposed_start: datetime,
    duration_minutes: int,
    exclude_appointment_id: int | None = None,
    mode: str = "legacy",
) -> None:
    lock_owner_schedule(s, owner_id)
    if has_conflict(s, owner_id, proposed_start, duration_minutes, exclude_appointment_id, mode):
        logger.info(
            "appointment_conflict",
            owner_id=owner_id,
            start=proposed_start.isoformat(),
            duration=duration_minutes,
            mode=mode,
        )
        raise errors.SchedulingConflict(details="Já existe um agendamento neste horário")
