import threading
from datetime import date, datetime

import pytest
from sqlalchemy import DateTime
from sqlmodel import Session, SQLModel, select

from sensidoc.application.clock import month_window
from sensidoc.application.ports.appointments_repo import AppointmentDto, NotesPatch
from sensidoc.database import build_engine, create_db_and_tables
from sensidoc.application.enums import Role
from sensidoc.application.identity import IdentityContext
from sensidoc.application.services.appointments_service import AppointmentsService
from sensidoc.db.models import Appointment, Doctor, UsageRecord, User
from sensidoc.exceptions import SlotTaken
from sensidoc.infrastructure.locks.memory_slot_locks import InMemorySlotLocks
from sensidoc.infrastructure.persistence.sqlalchemy.repositories.advisory_repository_sql import SqlAdvisoryRepository
from sensidoc.infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from sensidoc.infrastructure.persistence.sqlalchemy.repositories.usage_repository_sql import SqlUsageStore
from sensidoc.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository


NOW = datetime(2025, 3, 1, 9, 0)
DAY = date(2025, 3, 10)


def seed(engine):
    create_db_and_tables(bind=engine)
    with Session(engine) as s:
        s.add(User(id="pat-1", full_name="Pat", email="pat@example.com"))
        s.add(User(id="doc-1", full_name="Dr. One", email="one@example.com", role="doctor"))
        s.add(Doctor(id="doc-1", specialization="GP", is_verified=True))
        s.commit()


@pytest.fixture
def session():
    engine = build_engine("sqlite://")
    seed(engine)
    with Session(engine) as s:
        yield s


def appt(appt_id, status="pending", time_="10:00"):
    return AppointmentDto(
        id=appt_id,
        patient_id="pat-1",
        doctor_id="doc-1",
        appointment_date=DAY,
        appointment_time=time_,
        consultation_kind="video",
        status=status,
        symptom_notes=None,
        clinical_notes=None,
        prescription_text=None,
        created_at=NOW,
        updated_at=NOW,
    )


def test_get_doctor_joins_account_name(session):
    repo = SqlAppointmentsRepository(session)
    doctor = repo.get_doctor("doc-1")
    assert doctor.name == "Dr. One"
    assert doctor.is_verified is True
    assert repo.get_doctor("nobody") is None


def test_second_active_appointment_on_slot_is_refused(session):
    repo = SqlAppointmentsRepository(session)
    repo.create(appt("a1"))
    assert repo.find_conflict("doc-1", DAY, "10:00") is True

    with pytest.raises(SlotTaken):
        repo.create(appt("a2"))
    assert repo.get_by_id("a2") is None

    # another time on the same day is a different slot
    repo.create(appt("a3", time_="10:30"))
    assert len(repo.list(doctor_id="doc-1")) == 2


def test_cancelled_appointment_frees_slot(session):
    repo = SqlAppointmentsRepository(session)
    repo.create(appt("a1"))
    cancelled = repo.update_status("a1", "pending", "cancelled", NOW)
    assert cancelled.status == "cancelled"
    assert repo.find_conflict("doc-1", DAY, "10:00") is False

    repo.create(appt("a2"))
    assert {a.id for a in repo.list(patient_id="pat-1")} == {"a1", "a2"}
    assert [a.id for a in repo.list(status="pending")] == ["a2"]


def test_update_status_is_compare_and_set(session):
    repo = SqlAppointmentsRepository(session)
    repo.create(appt("a1"))
    later = datetime(2025, 3, 2, 8, 0)

    assert repo.update_status("a1", "pending", "confirmed", later).status == "confirmed"
    # stale expectation loses
    assert repo.update_status("a1", "pending", "rejected", later) is None

    done = repo.update_status("a1", "confirmed", "completed", later, NotesPatch("rest well", "paracetamol"))
    assert done.clinical_notes == "rest well"
    assert done.prescription_text == "paracetamol"
    assert done.updated_at == later


def test_usage_store_counts_half_open_month(session):
    store = SqlUsageStore(session)
    start, end = month_window(NOW)
    store.add("pat-1", "diagnosis", start)
    store.add("pat-1", "diagnosis", datetime(2025, 3, 31, 23, 59))
    store.add("pat-1", "diagnosis", end)
    store.add("pat-1", "drug_analysis", datetime(2025, 3, 3))

    assert store.count("pat-1", "diagnosis", start, end) == 2
    assert store.count("pat-1", "drug_analysis", start, end) == 1


def test_user_repository(session):
    repo = SqlUserRepository(session)
    user = repo.get_by_id("doc-1")
    assert user.role == "doctor"
    assert user.membership_type == "free"
    assert repo.get_by_id("missing") is None


def test_advisory_history_merges_both_kinds(session):
    repo = SqlAdvisoryRepository(session)
    d = repo.save_diagnosis("pat-1", "fever", None, {"condition": "Flu", "confidence_level": "85", "recommendations": "rest"})
    repo.save_drug_analysis("pat-1", "Aspirin", None, {"drug_name": "Aspirin", "uses": ["pain"], "dosage": 500})

    assert d.result["condition"] == "Flu"
    all_rows = repo.list_for_user("pat-1")
    assert sorted(r.kind for r in all_rows) == ["diagnosis", "drug_analysis"]
    assert [r.kind for r in repo.list_for_user("pat-1", kind="drug_analysis")] == ["drug_analysis"]
    assert len(repo.list_for_user("pat-1", offset=1, limit=5)) == 1
    assert repo.list_for_user("doc-1") == []


def test_timestamp_columns_store_naive_utc(session):
    stamps = [
        col for table in SQLModel.metadata.sorted_tables for col in table.columns
        if col.name in ("created_at", "updated_at", "occurred_at")
    ]
    assert {col.table.name for col in stamps} >= {"users", "doctors", "appointments", "usage_records"}
    for col in stamps:
        assert type(col.type) is DateTime, f"{col.table.name}.{col.name}"
        assert col.type.timezone is False

    naive = datetime(2025, 3, 31, 23, 59, 59)
    session.add(UsageRecord(user_id="pat-1", service_kind="diagnosis", occurred_at=naive))
    session.commit()
    stored = session.exec(select(UsageRecord)).one()
    assert stored.occurred_at == naive
    assert stored.occurred_at.tzinfo is None


def test_concurrent_bookings_through_the_database(tmp_path):
    # One engine, one session and one lock table per thread, as separate workers would have
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    seed(engine)
    patients = [f"pat-{i}" for i in range(2, 10)]
    with Session(engine) as s:
        for p in patients:
            s.add(User(id=p, full_name=p, email=f"{p}@example.com"))
        s.commit()

    barrier = threading.Barrier(len(patients))
    results = []
    results_lock = threading.Lock()

    def worker(patient_id):
        with Session(engine) as s:
            svc = AppointmentsService(repo=SqlAppointmentsRepository(s), slot_locks=InMemorySlotLocks())
            identity = IdentityContext(patient_id, Role.PATIENT)
            barrier.wait()
            try:
                svc.book(identity, "doc-1", "2099-01-05", "09:30", "chat")
                outcome = "ok"
            except SlotTaken:
                outcome = "taken"
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(p,)) for p in patients]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == ["ok"] + ["taken"] * (len(patients) - 1)
    with Session(engine) as s:
        assert len(s.exec(select(Appointment)).all()) == 1


def test_repository_counts_match_listing_filters(session):
    repo = SqlAppointmentsRepository(session)
    repo.create(appt("a1"))
    repo.create(appt("a2", time_="11:00"))
    repo.update_status("a2", "pending", "confirmed", NOW)

    assert repo.count(patient_id="pat-1") == 2
    assert repo.count(doctor_id="doc-1", status="confirmed") == 1
    assert repo.count(patient_id="nobody") == 0

    advisory = SqlAdvisoryRepository(session)
    advisory.save_diagnosis("pat-1", "fever", None, {"condition": "Flu"})
    advisory.save_diagnosis("pat-1", "cough", None, {"condition": "Cold"})
    advisory.save_drug_analysis("pat-1", "Aspirin", None, {"drug_name": "Aspirin"})
    assert advisory.count_for_user("pat-1") == 3
    assert advisory.count_for_user("pat-1", kind="diagnosis") == 2
