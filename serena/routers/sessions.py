from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from .. import services
from ..auth_models import Principal
from ..db import Database
from ..deps import get_current_principal, get_db
from ..models import CareType
from ..schemas import SessionIn, SessionOut

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=list[SessionOut])
def list_sessions(
    patient_id: int | None = Query(None, alias="patientId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    type: CareType | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.list_sessions(
        db, principal, patient_id=patient_id, start_date=start_date, end_date=end_date, type=type
    )


@router.get("/{session_id}", response_model=SessionOut)
def get_session(
    session_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.get_session(db, principal, session_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    row = services.create_session(db, principal, payload.model_dump())
    return {"message": "Sessão criada com sucesso", "session": SessionOut.model_validate(row)}


@router.put("/{session_id}")
def update_session(
    session_id: int,
    payload: SessionIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    row = services.update_session(db, principal, session_id, payload.model_dump())
    return {"message": "Sessão atualizada com sucesso", "session": SessionOut.model_validate(row)}


@router.delete("/{session_id}")
def delete_session(
    session_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    services.delete_session(db, principal, session_id)
    return {"message": "Sessão deletada com sucesso"}
