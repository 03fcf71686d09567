from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from .. import services
from ..auth_models import Principal
from ..db import Database
from ..deps import get_current_principal, get_db
from ..schemas import PatientIn, PatientOut

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", response_model=list[PatientOut])
def list_patients(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)) -> Any:
    return services.list_patients(db, principal)


# rotas fixas antes de /{patient_id}

@router.get("/search/{query}", response_model=list[PatientOut])
def search_patients(
    query: str,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.search_patients(db, principal, query)


@router.get("/{patient_id}/stats")
def patient_stats(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, int]:
    report = services.patient_record_counts(db, principal, patient_id)
    return {
        "sessions": report.sessions,
        "appointments": report.appointments,
        "payments": report.payments,
        "total": report.total,
    }


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.get_patient(db, principal, patient_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    p = services.create_patient(db, principal, payload.model_dump())
    return {"message": "Paciente criado com sucesso", "patient": PatientOut.model_validate(p)}


@router.put("/{patient_id}")
def update_patient(
    patient_id: int,
    payload: PatientIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    p = services.update_patient(db, principal, patient_id, payload.model_dump())
    return {"message": "Paciente atualizado com sucesso", "patient": PatientOut.model_validate(p)}


@router.delete("/{patient_id}")
def delete_patient(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    report = services.delete_patient(db, principal, patient_id)
    return {
        "message": report.message(),
        "deletedRecords": {
            "sessions": report.sessions,
            "appointments": report.appointments,
            "payments": report.payments,
        },
    }
