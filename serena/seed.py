from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select

from .auth_models import Role, User
from .auth_security import hash_password
from .db import Database
from .models import (
    Appointment,
    AppointmentStatus,
    CareType,
    Patient,
    Payment,
    PaymentMethod,
    PaymentStatus,
    TherapySession,
)
from .time_utils import utcnow

DEMO_EMAIL = "psicologo@clinica.com.br"
DEMO_PASSWORD = "demo123"

DEMO_PATIENTS = [
    {
        "name": "Maria Silva",
        "age": 34,
        "email": "maria.silva@email.com",
        "phone": "(11) 98765-4321",
        "address": "Rua das Flores, 123 - São Paulo",
        "emergency_contact": "José Silva",
        "emergency_phone": "(11) 91234-5678",
        "health_history": "Ansiedade generalizada",
        "initial_observations": "Primeira experiência com terapia",
    },
    {
        "name": "João Santos",
        "age": 28,
        "email": "joao.santos@email.com",
        "phone": "(21) 99876-5432",
        "address": "Av. Atlântica, 456 - Rio de Janeiro",
        "emergency_contact": "Ana Santos",
        "emergency_phone": "(21) 98765-1234",
        "health_history": "Episódios depressivos",
        "initial_observations": "Encaminhado pelo psiquiatra",
    },
    {
        "name": "Ana Costa",
        "age": 45,
        "email": "ana.costa@email.com",
        "phone": "(31) 97654-3210",
        "address": "Rua da Bahia, 789 - Belo Horizonte",
        "emergency_contact": "Pedro Costa",
        "emergency_phone": "(31) 96543-2109",
        "health_history": None,
        "initial_observations": "Busca orientação para questões profissionais",
    },
]


def _demo_owner(s) -> User:
    u = s.execute(select(User).where(User.email == DEMO_EMAIL)).scalar_one_or_none()
    if u is None:
        u = User(
            name="Dra. Demonstração",
            email=DEMO_EMAIL,
            password_hash=hash_password(DEMO_PASSWORD),
            role=Role.PSYCHOLOGIST,
            is_active=True,
        )
        s.add(u)
        s.flush()
    return u


def seed_demo(db: Database, now: datetime | None = None) -> int:
    """
    Popula dados de demonstração (idempotente):
    - psicólogo demo
    - 3 pacientes
    - sessões passadas, agendamentos futuros e pagamentos

    Pacientes já existentes (mesmo email) são ignorados. Retorna quantos foram criados.
    """
    now = (now or utcnow()).replace(second=0, microsecond=0)
    created = 0

    with db.session() as s:
        owner = _demo_owner(s)

        for i, data in enumerate(DEMO_PATIENTS):
            exists = s.execute(
                select(Patient.id).where(Patient.user_id == owner.id, Patient.email == data["email"])
            ).first()
            if exists is not None:
                continue

            p = Patient(user_id=owner.id, **data)
            s.add(p)
            s.flush()
            created += 1

            past = (now - timedelta(days=7 * (i + 1))).replace(hour=10 + i, minute=0)
            ts = TherapySession(
                user_id=owner.id,
                patient_id=p.id,
                date=past,
                duration=50,
                type=CareType.PRESENCIAL if i % 2 == 0 else CareType.ONLINE,
                notes="Sessão inicial: levantamento de demandas",
                objectives=["Estabelecer vínculo terapêutico"],
                techniques=["Escuta ativa"],
                mood=5 + i,
            )
            s.add(ts)
            s.flush()

            s.add(
                Appointment(
                    user_id=owner.id,
                    patient_id=p.id,
                    date=(now + timedelta(days=i + 1)).replace(hour=10 + i, minute=0),
                    duration=50,
                    type=ts.type,
                    status=AppointmentStatus.AGENDADO if i else AppointmentStatus.CONFIRMADO,
                )
            )
            s.add(
                Payment(
                    user_id=owner.id,
                    patient_id=p.id,
                    session_id=ts.id,
                    amount=150.0,
                    date=past,
                    method=PaymentMethod.PIX,
                    status=PaymentStatus.PAGO if i < 2 else PaymentStatus.PENDENTE,
                )
            )

    return created
