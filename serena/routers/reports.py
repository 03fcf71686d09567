from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from .. import reports
from ..auth_models import Principal
from ..db import Database
from ..deps import get_current_principal, get_db
from ..schemas import AppointmentOut, PaymentOut

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/financial")
def financial(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    return reports.financial_report(db, principal, start_date, end_date)


@router.get("/patients")
def patients(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    return reports.patients_report(db, principal, start_date, end_date)


@router.get("/sessions")
def sessions(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    return reports.sessions_report(db, principal, start_date, end_date)


@router.get("/appointments")
def appointments(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    return reports.appointments_report(db, principal, start_date, end_date)


@router.get("/dashboard")
def dashboard(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)) -> dict[str, Any]:
    data = reports.dashboard(db, principal)
    data["upcomingAppointments"] = [AppointmentOut.model_validate(r) for r in data["upcomingAppointments"]]
    data["pendingPayments"] = [PaymentOut.model_validate(r) for r in data["pendingPayments"]]
    return data
