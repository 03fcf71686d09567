from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .auth_models import User
from .db import Base
from .time_utils import utcnow


class PatientStatus(str, enum.Enum):
    ATIVO = "ativo"
    INATIVO = "inativo"
    SUSPENSO = "suspenso"


class CareType(str, enum.Enum):
    PRESENCIAL = "presencial"
    ONLINE = "online"


class AppointmentStatus(str, enum.Enum):
    AGENDADO = "agendado"
    CONFIRMADO = "confirmado"
    REALIZADO = "realizado"
    CANCELADO = "cancelado"


class PaymentMethod(str, enum.Enum):
    PIX = "pix"
    DINHEIRO = "dinheiro"
    CARTAO = "cartao"
    TRANSFERENCIA = "transferencia"


class PaymentStatus(str, enum.Enum):
    PENDENTE = "pendente"
    PAGO = "pago"
    ATRASADO = "atrasado"


def _enum(enum_cls: type[enum.Enum]) -> Enum:
    # grava o valor ("agendado"), não o nome do membro
    return Enum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20)


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        # o mesmo profissional não cadastra dois pacientes com o mesmo email
        UniqueConstraint("user_id", "email", name="uq_patient_user_email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[str] = mapped_column(String(255), nullable=False)
    emergency_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    health_history: Mapped[str | None] = mapped_column(Text, nullable=True)
    initial_observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[PatientStatus] = mapped_column(_enum(PatientStatus), default=PatientStatus.ATIVO, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner: Mapped[User] = relationship()

    def __repr__(self) -> str:
        return f"Patient({self.name}, user={self.user_id})"


class TherapySession(Base):
    """Registro de sessão de terapia (tabela "sessions")."""
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"), index=True, nullable=False)

    date: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutos, 15-180
    type: Mapped[CareType] = mapped_column(_enum(CareType), nullable=False)
    mood: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-10
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_recording: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # listas no domínio; JSON só no armazenamento
    attachments: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    objectives: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    techniques: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    next_session_goals: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    patient: Mapped[Patient] = relationship()


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"), index=True, nullable=False)

    date: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutos, 15-180
    type: Mapped[CareType] = mapped_column(_enum(CareType), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        _enum(AppointmentStatus), default=AppointmentStatus.AGENDADO, index=True, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    patient: Mapped[Patient] = relationship()


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"), index=True, nullable=False)
    # sessão apagada -> referência limpa, pagamento permanece
    session_id: Mapped[int | None] = mapped_column(
        ForeignKey("sessions.id", ondelete="SET NULL"), index=True, nullable=True
    )

    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus), default=PaymentStatus.PENDENTE, index=True, nullable=False
    )
    receipt_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    patient: Mapped[Patient] = relationship()
    session: Mapped[TherapySession | None] = relationship()
