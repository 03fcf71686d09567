"""Schemas Pydantic da API (JSON em camelCase, atributos em snake_case)."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .auth_models import Role
from .models import AppointmentStatus, CareType, PatientStatus, PaymentMethod, PaymentStatus

PHONE_PATTERN = r"^\(\d{2}\)\s\d{4,5}-\d{4}$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Schemas auth / usuários

class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None


class LoginOut(CamelModel):
    message: str = "Login realizado com sucesso"
    token: str
    user: UserOut


class VerifyOut(CamelModel):
    valid: bool = True
    user: UserOut


class ProfileUpdateIn(CamelModel):
    name: str | None = Field(None, min_length=2)
    email: EmailStr | None = None


class ChangePasswordIn(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)
    confirm_password: str


class DeleteAccountIn(CamelModel):
    password: str


class UserCreateIn(CamelModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role = Role.PSYCHOLOGIST


class UserUpdateIn(CamelModel):
    name: str | None = Field(None, min_length=2)
    email: EmailStr | None = None
    role: Role | None = None
    is_active: bool | None = None


class SetPasswordIn(CamelModel):
    new_password: str = Field(..., min_length=6)


# Schemas do domínio

class PatientIn(CamelModel):
    name: str = Field(..., min_length=2)
    age: int = Field(..., ge=0, le=120)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    address: str | None = None
    emergency_contact: str = Field(..., min_length=2)
    emergency_phone: str = Field(..., pattern=PHONE_PATTERN)
    health_history: str | None = None
    initial_observations: str | None = None
    status: PatientStatus | None = None


class PatientOut(CamelModel):
    id: int
    user_id: int
    name: str
    age: int
    email: str
    phone: str
    address: str | None = None
    emergency_contact: str
    emergency_phone: str
    health_history: str | None = None
    initial_observations: str | None = None
    status: PatientStatus
    created_at: datetime
    updated_at: datetime


class SessionIn(CamelModel):
    patient_id: int
    date: datetime
    duration: int = Field(..., ge=15, le=180)
    type: CareType
    notes: str | None = None
    audio_recording: str | None = None
    attachments: list[str] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
    techniques: list[str] = Field(default_factory=list)
    mood: int = Field(..., ge=1, le=10)
    next_session_goals: str | None = None


class SessionOut(CamelModel):
    id: int
    user_id: int
    patient_id: int
    patient_name: str | None = None
    date: datetime
    duration: int
    type: CareType
    notes: str | None = None
    audio_recording: str | None = None
    attachments: list[str]
    objectives: list[str]
    techniques: list[str]
    mood: int
    next_session_goals: str | None = None
    created_at: datetime
    updated_at: datetime


class AppointmentIn(CamelModel):
    patient_id: int
    date: datetime
    duration: int = Field(..., ge=15, le=180)
    type: CareType
    status: AppointmentStatus | None = None
    notes: str | None = None
    reminder_sent: bool | None = None


class AppointmentOut(CamelModel):
    id: int
    user_id: int
    patient_id: int
    patient_name: str | None = None
    date: datetime
    duration: int
    type: CareType
    status: AppointmentStatus
    notes: str | None = None
    reminder_sent: bool
    created_at: datetime
    updated_at: datetime


class PaymentIn(CamelModel):
    patient_id: int
    session_id: int | None = None
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    date: datetime
    method: PaymentMethod
    status: PaymentStatus | None = None
    receipt_url: str | None = None
    notes: str | None = None


class PaymentOut(CamelModel):
    id: int
    user_id: int
    patient_id: int
    patient_name: str | None = None
    session_id: int | None = None
    amount: float
    date: datetime
    method: PaymentMethod
    status: PaymentStatus
    receipt_url: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
