from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from .. import services
from ..auth_models import Principal
from ..config import Settings
from ..db import Database
from ..deps import get_current_principal, get_db, get_settings
from ..models import AppointmentStatus, CareType
from ..schemas import AppointmentIn, AppointmentOut

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=list[AppointmentOut])
def list_appointments(
    patient_id: int | None = Query(None, alias="patientId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    status: AppointmentStatus | None = Query(None),
    type: CareType | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.list_appointments(
        db,
        principal,
        patient_id=patient_id,
        start_date=start_date,
        end_date=end_date,
        status=status,
        type=type,
    )


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.get_appointment(db, principal, appointment_id)


@router.post("", status_code=201)
def create_appointment(
    payload: AppointmentIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    row = services.create_appointment(db, principal, payload.model_dump(), conflict_mode=settings.conflict_window)
    return {"message": "Agendamento criado com sucesso", "appointment": AppointmentOut.model_validate(row)}


@router.put("/{appointment_id}")
def update_appointment(
    appointment_id: int,
    payload: AppointmentIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    row = services.update_appointment(
        db, principal, appointment_id, payload.model_dump(), conflict_mode=settings.conflict_window
    )
    return {"message": "Agendamento atualizado com sucesso", "appointment": AppointmentOut.model_validate(row)}


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    services.delete_appointment(db, principal, appointment_id)
    return {"message": "Agendamento deletado com sucesso"}
