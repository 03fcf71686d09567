"""
Relatórios e dashboard (somente leitura).

Todas as consultas passam por scope(). O agrupamento por mês é feito em Python
(month_key) para não depender de funções de data específicas do banco.
Médias de conjuntos vazios valem 0.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Any, Iterable

from sqlalchemy import func, select

from .auth_models import Principal
from .db import Database
from .models import (
    Appointment,
    AppointmentStatus,
    CareType,
    Patient,
    PatientStatus,
    Payment,
    PaymentStatus,
    TherapySession,
)
from .scoping import scope
from .services import filter_by_date, flat_row
from .time_utils import month_key, utcnow

MONTHS_LIMIT = 12
DASHBOARD_LIMIT = 5


def _avg(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0


def _money(value: float) -> float:
    return round(float(value or 0), 2)


def _recent_months(buckets: dict[str, Any]) -> list[str]:
    return sorted(buckets, reverse=True)[:MONTHS_LIMIT]


def _payments_in_range(s, principal: Principal, start_date: date | None, end_date: date | None) -> list[Payment]:
    q = scope(select(Payment), principal, Payment.user_id)
    return list(s.scalars(filter_by_date(q, Payment.date, start_date, end_date)))


def _totals_by_status(payments: Iterable[Payment]) -> dict[PaymentStatus, tuple[float, int]]:
    totals = {st: (0.0, 0) for st in PaymentStatus}
    for p in payments:
        amount, count = totals[p.status]
        totals[p.status] = (amount + p.amount, count + 1)
    return totals


# =========================
# Financeiro
# =========================
def financial_report(
    db: Database, principal: Principal, start_date: date | None = None, end_date: date | None = None
) -> dict[str, Any]:
    with db.session() as s:
        payments = _payments_in_range(s, principal, start_date, end_date)

    totals = _totals_by_status(payments)
    paid_amount, paid_count = totals[PaymentStatus.PAGO]
    pending_amount, pending_count = totals[PaymentStatus.PENDENTE]
    overdue_amount, overdue_count = totals[PaymentStatus.ATRASADO]

    by_method: dict[str, list] = {}
    monthly: dict[str, list] = defaultdict(lambda: [0.0, 0])
    for p in payments:
        if p.status == PaymentStatus.PAGO:
            entry = by_method.setdefault(p.method.value, [0.0, 0])
            entry[0] += p.amount
            entry[1] += 1
        bucket = monthly[month_key(p.date)]
        if p.status == PaymentStatus.PAGO:
            bucket[0] += p.amount
        bucket[1] += 1

    return {
        "summary": {
            "totalPayments": len(payments),
            "totalAmount": _money(sum(p.amount for p in payments)),
            "totalRevenue": _money(paid_amount),
            "pendingAmount": _money(pending_amount),
            "overdueAmount": _money(overdue_amount),
            "averagePayment": _money(paid_amount / paid_count) if paid_count else 0,
            "paidCount": paid_count,
            "pendingCount": pending_count,
            "overdueCount": overdue_count,
        },
        "revenueByMethod": [
            {"method": method, "total": _money(total), "count": count}
            for method, (total, count) in sorted(by_method.items())
        ],
        "monthlyRevenue": [
            {"month": m, "revenue": _money(monthly[m][0]), "payments": monthly[m][1]}
            for m in _recent_months(monthly)
        ],
    }


def payments_summary(
    db: Database, principal: Principal, start_date: date | None = None, end_date: date | None = None
) -> dict[str, Any]:
    with db.session() as s:
        payments = _payments_in_range(s, principal, start_date, end_date)

    totals = _totals_by_status(payments)
    return {
        "total": len(payments),
        "totalPaid": _money(totals[PaymentStatus.PAGO][0]),
        "totalPending": _money(totals[PaymentStatus.PENDENTE][0]),
        "totalOverdue": _money(totals[PaymentStatus.ATRASADO][0]),
        "paidCount": totals[PaymentStatus.PAGO][1],
        "pendingCount": totals[PaymentStatus.PENDENTE][1],
        "overdueCount": totals[PaymentStatus.ATRASADO][1],
    }


# =========================
# Pacientes
# =========================
def patients_report(
    db: Database, principal: Principal, start_date: date | None = None, end_date: date | None = None
) -> dict[str, Any]:
    """O período filtra apenas newPatientsByMonth (data de cadastro)."""
    with db.session() as s:
        patients = list(s.scalars(scope(select(Patient), principal, Patient.user_id)))

        with_sessions = s.execute(
            scope(
                select(Patient.id, Patient.name, func.count(TherapySession.id).label("session_count"))
                .join(TherapySession, TherapySession.patient_id == Patient.id)
                .group_by(Patient.id, Patient.name),
                principal,
                Patient.user_id,
            ).order_by(func.count(TherapySession.id).desc(), Patient.name.asc())
        ).all()

        new_patients = list(
            s.scalars(
                filter_by_date(
                    scope(select(Patient.created_at), principal, Patient.user_id),
                    Patient.created_at,
                    start_date,
                    end_date,
                )
            )
        )

    by_status = defaultdict(int)
    for p in patients:
        by_status[p.status] += 1

    monthly: dict[str, int] = defaultdict(int)
    for created_at in new_patients:
        monthly[month_key(created_at)] += 1

    return {
        "summary": {
            "totalPatients": len(patients),
            "activePatients": by_status[PatientStatus.ATIVO],
            "inactivePatients": by_status[PatientStatus.INATIVO],
            "suspendedPatients": by_status[PatientStatus.SUSPENSO],
        },
        "patientsWithSessions": [
            {"id": r.id, "name": r.name, "sessionCount": r.session_count} for r in with_sessions
        ],
        "newPatientsByMonth": [{"month": m, "newPatients": monthly[m]} for m in _recent_months(monthly)],
    }


# =========================
# Sessões
# =========================
def sessions_report(
    db: Database, principal: Principal, start_date: date | None = None, end_date: date | None = None
) -> dict[str, Any]:
    with db.session() as s:
        q = select(TherapySession, Patient.name.label("patient_name")).join(
            Patient, TherapySession.patient_id == Patient.id
        )
        q = filter_by_date(scope(q, principal, TherapySession.user_id), TherapySession.date, start_date, end_date)
        rows = s.execute(q).all()

    sessions = [r[0] for r in rows]
    by_patient: dict[int, dict[str, Any]] = {}
    monthly: dict[str, list[int]] = defaultdict(list)
    for ts, patient_name in rows:
        entry = by_patient.setdefault(ts.patient_id, {"name": patient_name, "moods": []})
        entry["moods"].append(ts.mood)
        monthly[month_key(ts.date)].append(ts.mood)

    sessions_by_patient = [
        {
            "patientId": pid,
            "patientName": e["name"],
            "sessionCount": len(e["moods"]),
            "averageMood": _avg(e["moods"]),
        }
        for pid, e in by_patient.items()
    ]
    sessions_by_patient.sort(key=lambda e: (-e["sessionCount"], e["patientName"]))

    return {
        "summary": {
            "totalSessions": len(sessions),
            "averageMood": _avg([ts.mood for ts in sessions]),
            "averageDuration": _avg([ts.duration for ts in sessions]),
            "presencialCount": sum(1 for ts in sessions if ts.type == CareType.PRESENCIAL),
            "onlineCount": sum(1 for ts in sessions if ts.type == CareType.ONLINE),
        },
        "sessionsByPatient": sessions_by_patient,
        "sessionsByMonth": [
            {"month": m, "sessionCount": len(monthly[m]), "averageMood": _avg(monthly[m])}
            for m in _recent_months(monthly)
        ],
    }


# =========================
# Agendamentos
# =========================
def attendance_rate(completed: int, total: int) -> float:
    """Percentual de agendamentos realizados; 0 quando não há agendamentos."""
    if total == 0:
        return 0
    return completed * 100.0 / total


def appointments_report(
    db: Database, principal: Principal, start_date: date | None = None, end_date: date | None = None
) -> dict[str, Any]:
    with db.session() as s:
        q = scope(select(Appointment), principal, Appointment.user_id)
        appointments = list(s.scalars(filter_by_date(q, Appointment.date, start_date, end_date)))

    by_status = defaultdict(int)
    by_type = defaultdict(int)
    monthly: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for a in appointments:
        by_status[a.status] += 1
        by_type[a.type] += 1
        bucket = monthly[month_key(a.date)]
        bucket[0] += 1
        if a.status == AppointmentStatus.REALIZADO:
            bucket[1] += 1

    total = len(appointments)
    return {
        "summary": {
            "totalAppointments": total,
            "scheduledCount": by_status[AppointmentStatus.AGENDADO],
            "confirmedCount": by_status[AppointmentStatus.CONFIRMADO],
            "completedCount": by_status[AppointmentStatus.REALIZADO],
            "cancelledCount": by_status[AppointmentStatus.CANCELADO],
            "presencialCount": by_type[CareType.PRESENCIAL],
            "onlineCount": by_type[CareType.ONLINE],
        },
        "attendanceRate": attendance_rate(by_status[AppointmentStatus.REALIZADO], total),
        "appointmentsByMonth": [
            {"month": m, "appointmentCount": monthly[m][0], "completedCount": monthly[m][1]}
            for m in _recent_months(monthly)
        ],
    }


# =========================
# Dashboard
# =========================
def dashboard(db: Database, principal: Principal, now: datetime | None = None) -> dict[str, Any]:
    """
    Totais por entidade, receita paga do mês corrente, próximos agendamentos
    (agendado/confirmado) e pagamentos em aberto mais antigos.
    Listas retornam linhas flat com patient_name.
    """
    now = now or utcnow()
    current_month = month_key(now)

    with db.session() as s:
        def count(model) -> int:
            return s.scalar(scope(select(func.count()).select_from(model), principal, model.user_id)) or 0

        totals = {
            "totalPatients": count(Patient),
            "totalSessions": count(TherapySession),
            "totalAppointments": count(Appointment),
            "totalPayments": count(Payment),
        }

        paid = s.execute(
            scope(select(Payment.amount, Payment.date), principal, Payment.user_id).where(
                Payment.status == PaymentStatus.PAGO
            )
        ).all()

        upcoming = s.execute(
            scope(
                select(Appointment, Patient.name.label("patient_name")).join(
                    Patient, Appointment.patient_id == Patient.id
                ),
                principal,
                Appointment.user_id,
            )
            .where(
                Appointment.date >= now,
                Appointment.status.in_([AppointmentStatus.AGENDADO, AppointmentStatus.CONFIRMADO]),
            )
            .order_by(Appointment.date.asc())
            .limit(DASHBOARD_LIMIT)
        ).all()

        pending = s.execute(
            scope(
                select(Payment, Patient.name.label("patient_name")).join(Patient, Payment.patient_id == Patient.id),
                principal,
                Payment.user_id,
            )
            .where(Payment.status.in_([PaymentStatus.PENDENTE, PaymentStatus.ATRASADO]))
            .order_by(Payment.date.asc())
            .limit(DASHBOARD_LIMIT)
        ).all()

    totals["currentMonthRevenue"] = _money(sum(r.amount for r in paid if month_key(r.date) == current_month))
    return {
        "summary": totals,
        "upcomingAppointments": [flat_row(r[0], patient_name=r.patient_name) for r in upcoming],
        "pendingPayments": [flat_row(r[0], patient_name=r.patient_name) for r in pending],
    }
