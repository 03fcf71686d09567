from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from .. import reports, services
from ..auth_models import Principal
from ..db import Database
from ..deps import get_current_principal, get_db
from ..models import PaymentMethod, PaymentStatus
from ..schemas import PaymentIn, PaymentOut

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=list[PaymentOut])
def list_payments(
    patient_id: int | None = Query(None, alias="patientId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    status: PaymentStatus | None = Query(None),
    method: PaymentMethod | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.list_payments(
        db,
        principal,
        patient_id=patient_id,
        start_date=start_date,
        end_date=end_date,
        status=status,
        method=method,
    )


@router.get("/stats/summary")
def payments_summary(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    return reports.payments_summary(db, principal, start_date=start_date, end_date=end_date)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> Any:
    return services.get_payment(db, principal, payment_id)


@router.post("", status_code=201)
def create_payment(
    payload: PaymentIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    row = services.create_payment(db, principal, payload.model_dump())
    return {"message": "Pagamento criado com sucesso", "payment": PaymentOut.model_validate(row)}


@router.put("/{payment_id}")
def update_payment(
    payment_id: int,
    payload: PaymentIn,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    row = services.update_payment(db, principal, payment_id, payload.model_dump())
    return {"message": "Pagamento atualizado com sucesso", "payment": PaymentOut.model_validate(row)}


@router.delete("/{payment_id}")
def delete_payment(
    payment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
) -> dict[str, Any]:
    services.delete_payment(db, principal, payment_id)
    return {"message": "Pagamento deletado com sucesso"}
