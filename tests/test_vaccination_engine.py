# tests/test_vaccination_engine.py

from datetime import timedelta

import pytest

from app.models.all_models import DriveStatus, Student, VaccinationDrive, VaccinationStatus
from app.utils.exceptions import (
    AlreadyVaccinated,
    CapacityBelowUsage,
    DateConflict,
    DriveCancelled,
    DriveExpired,
    DriveNotFound,
    ImmutableCompleted,
    NoDosesRemaining,
    NotEligibleClass,
    SchedulingTooSoon,
    StudentNotFound,
    ValidationFailed,
)


def schedule(engine, today, days=20, **overrides):
    fields = dict(
        name="Hepatitis B Drive",
        date=today + timedelta(days=days),
        vaccine_name="Hepatitis B",
        total_doses=5,
        target_classes=["8", "9"],
    )
    fields.update(overrides)
    return engine.schedule_drive(**fields)


class TestScheduleDrive:

    def test_schedules_drive_fifteen_days_ahead(self, vaccination_engine, today):
        """The minimum lead time is inclusive"""
        drive = schedule(vaccination_engine, today, days=15)

        assert drive.id is not None
        assert drive.date == today + timedelta(days=15)
        assert drive.used_doses == 0
        assert drive.remaining_doses == 5
        assert drive.status == DriveStatus.SCHEDULED
        assert drive.target_classes == ["8", "9"]

    def test_rejects_drive_fourteen_days_ahead(self, vaccination_engine, today, db_session):
        """A drive one day inside the lead time is too soon"""
        with pytest.raises(SchedulingTooSoon):
            schedule(vaccination_engine, today, days=14)

        assert db_session.query(VaccinationDrive).count() == 0

    def test_rejects_second_drive_on_same_date(self, vaccination_engine, today):
        """Only one active drive may occupy a date"""
        schedule(vaccination_engine, today, days=20)

        with pytest.raises(DateConflict):
            schedule(vaccination_engine, today, days=20, name="MMR Drive", vaccine_name="MMR")

    def test_cancelled_drive_frees_its_date(self, vaccination_engine, today):
        """Cancelling a drive makes its date available again"""
        first = schedule(vaccination_engine, today, days=20)
        vaccination_engine.cancel_drive(first.id)

        second = schedule(vaccination_engine, today, days=20, name="MMR Drive", vaccine_name="MMR")

        assert second.id != first.id

    @pytest.mark.parametrize("overrides", [
        {"name": "   "},
        {"vaccine_name": ""},
        {"total_doses": 0},
        {"total_doses": -3},
        {"target_classes": []},
        {"target_classes": ["  "]},
        {"date": None},
    ])
    def test_rejects_invalid_fields(self, vaccination_engine, today, overrides):
        """Blank text, non-positive doses and empty class lists are rejected"""
        with pytest.raises(ValidationFailed):
            schedule(vaccination_engine, today, **overrides)

    def test_strips_and_deduplicates_classes(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today, target_classes=[" 8 ", "8", "9"])

        assert drive.target_classes == ["8", "9"]

    def test_lead_time_is_configurable(self, db_session, today):
        """A custom lead time replaces the default"""
        from app.services.vaccination_engine import VaccinationEngine

        engine = VaccinationEngine(db_session, today=lambda: today, min_lead_days=3)
        drive = schedule(engine, today, days=3)

        assert drive.date == today + timedelta(days=3)


class TestEditDrive:

    def test_updates_supplied_fields_only(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)

        updated = vaccination_engine.edit_drive(drive.id, name="Hep B Catch-up", total_doses=8)

        assert updated.name == "Hep B Catch-up"
        assert updated.total_doses == 8
        assert updated.vaccine_name == "Hepatitis B"
        assert updated.date == today + timedelta(days=20)

    def test_keeping_the_same_date_is_not_a_conflict(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)

        updated = vaccination_engine.edit_drive(drive.id, date=drive.date, total_doses=6)

        assert updated.total_doses == 6

    def test_moving_onto_occupied_date_conflicts(self, vaccination_engine, today):
        schedule(vaccination_engine, today, days=20)
        other = schedule(vaccination_engine, today, days=25, name="MMR Drive", vaccine_name="MMR")

        with pytest.raises(DateConflict):
            vaccination_engine.edit_drive(other.id, date=today + timedelta(days=20))

    def test_moving_inside_lead_time_is_too_soon(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today, days=20)

        with pytest.raises(SchedulingTooSoon):
            vaccination_engine.edit_drive(drive.id, date=today + timedelta(days=10))

    def test_total_doses_cannot_drop_below_used(self, vaccination_engine, today, make_student):
        """Capacity can shrink to exactly the doses already used but no further"""
        drive = schedule(vaccination_engine, today)
        for _ in range(2):
            vaccination_engine.mark_student_vaccinated(make_student().id, drive.id)

        with pytest.raises(CapacityBelowUsage):
            vaccination_engine.edit_drive(drive.id, total_doses=1)

        updated = vaccination_engine.edit_drive(drive.id, total_doses=2)
        assert updated.remaining_doses == 0

    def test_completed_drive_is_immutable(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)
        vaccination_engine.complete_drive(drive.id)

        with pytest.raises(ImmutableCompleted):
            vaccination_engine.edit_drive(drive.id, name="Renamed")

    def test_cancelled_drive_cannot_be_edited(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)
        vaccination_engine.cancel_drive(drive.id)

        with pytest.raises(DriveCancelled):
            vaccination_engine.edit_drive(drive.id, name="Renamed")

    @pytest.mark.parametrize("offset", [0, -1, -30])
    def test_drive_on_or_before_today_is_expired(self, vaccination_engine, make_drive, today, offset):
        """A drive taking place today or earlier can no longer be edited"""
        drive = make_drive(date=today + timedelta(days=offset))

        with pytest.raises(DriveExpired):
            vaccination_engine.edit_drive(drive.id, name="Renamed")

    def test_unknown_drive(self, vaccination_engine):
        import uuid

        with pytest.raises(DriveNotFound):
            vaccination_engine.edit_drive(uuid.uuid4(), name="Renamed")

    def test_rejects_invalid_changes(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)

        with pytest.raises(ValidationFailed):
            vaccination_engine.edit_drive(drive.id, total_doses=0)
        with pytest.raises(ValidationFailed):
            vaccination_engine.edit_drive(drive.id, used_doses=3)

    def test_rejected_edit_leaves_drive_unchanged(self, vaccination_engine, today, db_session):
        drive = schedule(vaccination_engine, today)

        with pytest.raises(SchedulingTooSoon):
            vaccination_engine.edit_drive(drive.id, name="Renamed", date=today + timedelta(days=2))

        reloaded = db_session.get(VaccinationDrive, drive.id)
        assert reloaded.name == "Hepatitis B Drive"
        assert reloaded.date == today + timedelta(days=20)


class TestDriveStatus:

    def test_cancel_and_complete(self, vaccination_engine, today):
        first = schedule(vaccination_engine, today, days=20)
        second = schedule(vaccination_engine, today, days=21)

        assert vaccination_engine.cancel_drive(first.id).status == DriveStatus.CANCELLED
        assert vaccination_engine.complete_drive(second.id).status == DriveStatus.COMPLETED

    def test_repeating_the_same_transition_is_a_no_op(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)
        vaccination_engine.cancel_drive(drive.id)

        assert vaccination_engine.cancel_drive(drive.id).status == DriveStatus.CANCELLED

    def test_completed_drive_cannot_be_cancelled(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)
        vaccination_engine.complete_drive(drive.id)

        with pytest.raises(ImmutableCompleted):
            vaccination_engine.cancel_drive(drive.id)

    def test_cancelled_drive_cannot_be_completed(self, vaccination_engine, today):
        drive = schedule(vaccination_engine, today)
        vaccination_engine.cancel_drive(drive.id)

        with pytest.raises(DriveCancelled):
            vaccination_engine.complete_drive(drive.id)

    def test_past_drive_can_still_be_completed(self, vaccination_engine, make_drive, today):
        """Closing a drive is allowed after its date has passed"""
        drive = make_drive(date=today - timedelta(days=3))

        assert vaccination_engine.complete_drive(drive.id).status == DriveStatus.COMPLETED


class TestMarkStudentVaccinated:

    def test_records_vaccination_and_consumes_a_dose(self, vaccination_engine, make_drive, make_student, today):
        drive = make_drive(total_doses=3)
        student = make_student()

        student, drive = vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        assert drive.used_doses == 1
        assert drive.remaining_doses == 2
        assert len(student.vaccinations) == 1
        entry = student.vaccinations[0]
        assert entry.drive_id == drive.id
        assert entry.vaccine_name == "MMR"
        assert entry.date == today
        assert entry.status == VaccinationStatus.COMPLETED
        assert student.is_vaccinated

    def test_uses_explicit_vaccination_date(self, vaccination_engine, make_drive, make_student, today):
        drive = make_drive()
        given = today - timedelta(days=1)

        student, _ = vaccination_engine.mark_student_vaccinated(make_student().id, drive.id, given)

        assert student.vaccinations[0].date == given

    def test_unknown_student(self, vaccination_engine, make_drive):
        import uuid

        with pytest.raises(StudentNotFound):
            vaccination_engine.mark_student_vaccinated(uuid.uuid4(), make_drive().id)

    def test_unknown_drive(self, vaccination_engine, make_student):
        import uuid

        with pytest.raises(DriveNotFound):
            vaccination_engine.mark_student_vaccinated(make_student().id, uuid.uuid4())

    def test_class_must_be_targeted(self, vaccination_engine, make_drive, make_student, db_session):
        drive = make_drive(target_classes=["5", "6"])
        student = make_student(class_name="8")

        with pytest.raises(NotEligibleClass):
            vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        assert db_session.get(VaccinationDrive, drive.id).used_doses == 0

    def test_student_cannot_be_vaccinated_twice_in_a_drive(self, vaccination_engine, make_drive, make_student,
                                                           db_session):
        drive = make_drive()
        student = make_student()
        vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        with pytest.raises(AlreadyVaccinated):
            vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        assert db_session.get(VaccinationDrive, drive.id).used_doses == 1
        assert len(db_session.get(Student, student.id).vaccinations) == 1

    def test_no_doses_remaining(self, vaccination_engine, make_drive, make_student, db_session):
        drive = make_drive(total_doses=1)
        vaccination_engine.mark_student_vaccinated(make_student().id, drive.id)
        last = make_student()

        with pytest.raises(NoDosesRemaining):
            vaccination_engine.mark_student_vaccinated(last.id, drive.id)

        assert db_session.get(VaccinationDrive, drive.id).used_doses == 1
        assert db_session.get(Student, last.id).vaccinations == []

    def test_used_doses_never_exceed_total(self, vaccination_engine, make_drive, make_student):
        drive = make_drive(total_doses=3)
        outcomes = []
        for _ in range(5):
            try:
                _, drive = vaccination_engine.mark_student_vaccinated(make_student().id, drive.id)
                outcomes.append("ok")
            except NoDosesRemaining:
                outcomes.append("empty")

        assert outcomes == ["ok", "ok", "ok", "empty", "empty"]
        assert drive.used_doses == drive.total_doses == 3

    def test_stale_session_cannot_take_the_last_dose(self, db_engine, db_session, make_drive, make_student,
                                                     today, monkeypatch):
        """The conditional dose update refuses a caller whose view of the drive is out of date"""
        from sqlalchemy.orm import sessionmaker

        from app.crud import drive as drive_crud
        from app.services.vaccination_engine import VaccinationEngine

        drive = make_drive(total_doses=1)
        first, second = make_student(), make_student()

        increments = []
        real_increment = drive_crud.increment_used_doses

        def recording_increment(db, drive_id):
            consumed = real_increment(db, drive_id)
            increments.append(consumed)
            return consumed

        monkeypatch.setattr(drive_crud, "increment_used_doses", recording_increment)

        Session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
        stale, fresh = Session(), Session()
        try:
            # loaded before the other caller consumes the dose
            assert stale.get(VaccinationDrive, drive.id).used_doses == 0

            VaccinationEngine(fresh, today=lambda: today).mark_student_vaccinated(first.id, drive.id)

            with pytest.raises(NoDosesRemaining):
                VaccinationEngine(stale, today=lambda: today).mark_student_vaccinated(second.id, drive.id)
        finally:
            stale.close()
            fresh.close()

        assert increments == [True, False]
        db_session.expire_all()
        assert db_session.get(VaccinationDrive, drive.id).used_doses == 1
        assert db_session.get(Student, second.id).vaccinations == []

    def test_scheduled_entry_is_completed_in_place(self, vaccination_engine, make_drive, make_student,
                                                   add_vaccination, today):
        """A pending entry for the same drive becomes the completed record"""
        drive = make_drive()
        student = add_vaccination(make_student(), drive, status=VaccinationStatus.SCHEDULED)
        pending_id = student.vaccinations[0].id

        student, drive = vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        assert len(student.vaccinations) == 1
        assert student.vaccinations[0].id == pending_id
        assert student.vaccinations[0].status == VaccinationStatus.COMPLETED
        assert student.vaccinations[0].date == today
        assert drive.used_doses == 1

    def test_duplicate_pending_entries_collapse_to_one(self, vaccination_engine, make_drive, make_student,
                                                       add_vaccination):
        drive = make_drive()
        student = make_student()
        add_vaccination(student, drive, status=VaccinationStatus.SCHEDULED)
        add_vaccination(student, drive, status=VaccinationStatus.CANCELLED)

        student, _ = vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        assert [v.status for v in student.vaccinations] == [VaccinationStatus.COMPLETED]

    def test_other_drives_history_is_kept(self, vaccination_engine, make_drive, make_student,
                                         add_vaccination, today):
        earlier = make_drive(name="Polio Drive", vaccine_name="Polio", date=today - timedelta(days=90),
                             status=DriveStatus.COMPLETED)
        drive = make_drive()
        student = add_vaccination(make_student(), earlier)

        student, _ = vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        assert [v.vaccine_name for v in student.vaccinations] == ["Polio", "MMR"]

    def test_failure_while_recording_rolls_back_the_dose(self, vaccination_engine, make_drive, make_student,
                                                         db_session, monkeypatch):
        """The dose counter and the student history change together or not at all"""
        drive = make_drive(total_doses=2)
        student = make_student()

        def broken(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(vaccination_engine, "_record_vaccination", broken)

        with pytest.raises(RuntimeError):
            vaccination_engine.mark_student_vaccinated(student.id, drive.id)

        assert db_session.get(VaccinationDrive, drive.id).used_doses == 0
        assert db_session.get(Student, student.id).vaccinations == []
