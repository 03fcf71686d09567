from datetime import timedelta

import pytest

from serena import errors, services
from serena.models import AppointmentStatus
from serena.scheduling import check_status_transition, has_conflict


@pytest.fixture
def patient(alice, make_patient):
    return make_patient(alice)


def _conflict(db, owner, start, duration, mode="legacy", exclude=None):
    with db.session() as s:
        return has_conflict(s, owner.id, start, duration, exclude_appointment_id=exclude, mode=mode)


def test_same_start_conflicts(db, alice, patient, make_appointment, day):
    t = day.replace(hour=10)
    make_appointment(alice, patient["id"], t)

    assert _conflict(db, alice, t, 50)
    with pytest.raises(errors.SchedulingConflict):
        make_appointment(alice, patient["id"], t)


def test_partial_overlap_conflicts(alice, patient, make_appointment, day):
    make_appointment(alice, patient["id"], day.replace(hour=10))
    with pytest.raises(errors.SchedulingConflict) as exc:
        make_appointment(alice, patient["id"], day.replace(hour=10, minute=20))
    assert exc.value.status_code == 409
    assert exc.value.to_dict() == {"error": "Conflito de horário", "details": "Já existe um agendamento neste horário"}


def test_back_to_back_is_allowed(db, alice, patient, make_appointment, day):
    make_appointment(alice, patient["id"], day.replace(hour=10))
    assert not _conflict(db, alice, day.replace(hour=10, minute=50), 50)
    assert not _conflict(db, alice, day.replace(hour=9, minute=10), 50)


def test_legacy_window_misses_long_earlier_appointment(db, alice, patient, make_appointment, day):
    # 09:00-11:00 existente; proposta 10:30 (30 min) fica fora da janela (10:00, 11:00)
    make_appointment(alice, patient["id"], day.replace(hour=9), duration=120)
    proposed = day.replace(hour=10, minute=30)

    assert not _conflict(db, alice, proposed, 30, mode="legacy")
    assert _conflict(db, alice, proposed, 30, mode="overlap")


def test_overlap_mode_rejects_booking(alice, patient, make_appointment, day):
    make_appointment(alice, patient["id"], day.replace(hour=9), duration=120)
    with pytest.raises(errors.SchedulingConflict):
        make_appointment(alice, patient["id"], day.replace(hour=10, minute=30), duration=30, mode="overlap")


def test_overlap_mode_allows_adjacent(db, alice, patient, make_appointment, day):
    make_appointment(alice, patient["id"], day.replace(hour=9), duration=60)
    assert not _conflict(db, alice, day.replace(hour=10), 60, mode="overlap")


def test_unknown_mode(db, alice, day):
    with pytest.raises(ValueError):
        _conflict(db, alice, day, 50, mode="fuzzy")


def test_cancelled_appointments_do_not_block(alice, patient, make_appointment, day):
    t = day.replace(hour=10)
    make_appointment(alice, patient["id"], t, status=AppointmentStatus.CANCELADO)
    assert make_appointment(alice, patient["id"], t)["status"] == "agendado"


def test_other_owner_does_not_block(alice, bob, patient, make_patient, make_appointment, day):
    t = day.replace(hour=10)
    make_appointment(alice, patient["id"], t)
    other = make_patient(bob)
    assert make_appointment(bob, other["id"], t)["user_id"] == bob.id


def test_update_excludes_itself(db, alice, patient, make_appointment, day):
    t = day.replace(hour=10)
    appt = make_appointment(alice, patient["id"], t)

    data = {"patient_id": patient["id"], "date": t + timedelta(minutes=10), "duration": 50, "type": "presencial"}
    moved = services.update_appointment(db, alice, appt["id"], data)
    assert moved["date"] == t + timedelta(minutes=10)


def test_update_into_other_slot_conflicts(db, alice, patient, make_appointment, day):
    make_appointment(alice, patient["id"], day.replace(hour=10))
    second = make_appointment(alice, patient["id"], day.replace(hour=14))

    data = {"patient_id": patient["id"], "date": day.replace(hour=10, minute=15), "duration": 50, "type": "online"}
    with pytest.raises(errors.SchedulingConflict):
        services.update_appointment(db, alice, second["id"], data)
    assert services.get_appointment(db, alice, second["id"])["date"] == day.replace(hour=14)


def test_cancelling_skips_conflict_check(db, alice, patient, make_appointment, day):
    make_appointment(alice, patient["id"], day.replace(hour=10))
    second = make_appointment(alice, patient["id"], day.replace(hour=14))

    data = {
        "patient_id": patient["id"],
        "date": day.replace(hour=10),
        "duration": 50,
        "type": "presencial",
        "status": AppointmentStatus.CANCELADO,
    }
    assert services.update_appointment(db, alice, second["id"], data)["status"] == "cancelado"


@pytest.mark.parametrize(
    "current, new",
    [
        (AppointmentStatus.AGENDADO, AppointmentStatus.CONFIRMADO),
        (AppointmentStatus.AGENDADO, AppointmentStatus.CANCELADO),
        (AppointmentStatus.CONFIRMADO, AppointmentStatus.REALIZADO),
        (AppointmentStatus.CONFIRMADO, AppointmentStatus.CANCELADO),
        (AppointmentStatus.REALIZADO, AppointmentStatus.REALIZADO),
    ],
)
def test_allowed_transitions(current, new):
    check_status_transition(current, new)


@pytest.mark.parametrize(
    "current, new",
    [
        (AppointmentStatus.AGENDADO, AppointmentStatus.REALIZADO),
        (AppointmentStatus.REALIZADO, AppointmentStatus.CANCELADO),
        (AppointmentStatus.CANCELADO, AppointmentStatus.AGENDADO),
        (AppointmentStatus.CONFIRMADO, AppointmentStatus.AGENDADO),
    ],
)
def test_rejected_transitions(current, new):
    with pytest.raises(errors.ValidationError):
        check_status_transition(current, new)


def test_update_with_invalid_transition(db, alice, patient, make_appointment, day):
    appt = make_appointment(alice, patient["id"], day.replace(hour=10))
    data = {
        "patient_id": patient["id"],
        "date": day.replace(hour=10),
        "duration": 50,
        "type": "presencial",
        "status": AppointmentStatus.REALIZADO,
    }
    with pytest.raises(errors.ValidationError):
        services.update_appointment(db, alice, appt["id"], data)
