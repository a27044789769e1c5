import threading

import pytest

from brightx_module.config import STAR_STUDENT
from brightx_module.errors import InvalidOperationError, NoPendingConfirmationError, NotFoundError, StorageWriteError
from brightx_module.gate import DELETE_STUDENT, UNMARK_FEE, PendingAction
from brightx_module.schemas import MarkEntry, ScheduleCreate, StudentCreate, StudentStatus, StudentUpdate
from conftest import FailingStorage, SlowStorage


def events(store):
    return [entry.event for entry in store.state.audit_logs]


# ------------------- admission & profile -------------------
def test_admit_starts_active_with_empty_history(store, admit):
    asha = admit("Asha", monthly_fee=500)

    assert asha.status == StudentStatus.ACTIVE
    assert asha.paid_months == []
    assert asha.attendance == [] and asha.absences == []
    assert asha.exam_marks == [] and asha.badges == []
    assert asha.syllabus_progress == 0
    assert asha.monthly_fee == 500
    assert store.state.students == [asha]
    assert events(store) == ["New Admission: Asha"]


def test_edit_merges_fields_and_keeps_history(store, admit):
    asha = admit("Asha")
    store.toggle_fee(asha.id, "2024-10")

    updated = store.edit_student(asha.id, StudentUpdate(guardian_phone="9876543210"))

    assert updated.id == asha.id
    assert updated.guardian_phone == "9876543210"
    assert updated.name == "Asha"
    assert updated.paid_months == ["2024-10"]
    assert events(store)[0] == "Updated profile for Student: Asha"


def test_edit_never_changes_id(store, admit):
    asha = admit("Asha")
    updated = store.edit_student(asha.id, {"id": "other", "address": "MG Road"})
    assert updated.id == asha.id
    assert updated.address == "MG Road"


def test_missing_student_is_reported(store):
    with pytest.raises(NotFoundError):
        store.edit_student("ghost", {"name": "Nobody"})
    with pytest.raises(NotFoundError):
        store.toggle_deactivation("ghost")
    assert store.state.audit_logs == []


# ------------------- deletion -------------------
def test_delete_waits_for_confirmation(store, admit):
    asha = admit("Asha")
    ravi = admit("Ravi")
    store.select_student(asha.id)

    pending = store.delete_student(asha.id)

    assert pending.operation == DELETE_STUDENT
    assert [s.id for s in store.state.students] == [asha.id, ravi.id]
    assert len(store.state.audit_logs) == 2

    store.confirm_pending()

    assert [s.id for s in store.state.students] == [ravi.id]
    assert events(store)[0] == "Security Authorized: Permanent Delete Student - Asha"
    assert store.selected_student_id is None
    assert not store.gate.is_open


def test_cancelled_delete_changes_nothing(store, admit):
    asha = admit("Asha")
    store.delete_student(asha.id)

    store.cancel_pending()

    assert store.state.students == [asha]
    assert events(store) == ["New Admission: Asha"]
    with pytest.raises(NoPendingConfirmationError):
        store.confirm_pending()


def test_confirmed_action_runs_once(store, admit):
    asha = admit("Asha")
    store.delete_student(asha.id)
    store.confirm_pending()

    with pytest.raises(NoPendingConfirmationError):
        store.confirm_pending()
    assert events(store).count("Security Authorized: Permanent Delete Student - Asha") == 1


# ------------------- fees -------------------
def test_fee_toggle_scenario(store, admit):
    asha = admit("Asha", monthly_fee=500)

    paid = store.toggle_fee(asha.id, "2024-10")
    assert paid.paid_months == ["2024-10"]
    assert events(store)[0] == "Fee Paid: Asha for 2024-10"

    pending = store.toggle_fee(asha.id, "2024-10")
    assert isinstance(pending, PendingAction)
    assert pending.operation == UNMARK_FEE
    assert store.get_student(asha.id).paid_months == ["2024-10"]

    store.confirm_pending()
    assert store.get_student(asha.id).paid_months == []
    assert events(store)[0] == "Security Authorized: Unchecked fee for Asha (2024-10)"


# ------------------- promotion -------------------
def test_promote_moves_to_next_class_and_celebrates(store, admit, monotonic, settings):
    asha = admit("Asha", "Class 5")

    promoted = store.promote_student(asha.id)

    assert promoted.student_class == "Class 6"
    assert events(store)[0] == "Student Promoted: Asha from Class 5 to Class 6"
    assert store.celebration == "Asha"

    monotonic.value += settings.celebration_seconds
    assert store.celebration is None


def test_promote_at_highest_class_is_refused(store, admit):
    senior = admit("Meera", "Class 12")

    with pytest.raises(InvalidOperationError):
        store.promote_student(senior.id)

    assert store.get_student(senior.id).student_class == "Class 12"
    assert events(store) == ["New Admission: Meera"]
    assert store.celebration is None


def test_toggle_deactivation_archives_and_reactivates(store, admit):
    asha = admit("Asha")

    assert store.toggle_deactivation(asha.id).status == StudentStatus.DEACTIVATED
    assert events(store)[0] == "Account Archived: Asha"
    assert store.toggle_deactivation(asha.id).status == StudentStatus.ACTIVE
    assert events(store)[0] == "Account Reactivated: Asha"


# ------------------- attendance -------------------
def test_attendance_keeps_dates_disjoint(store, admit):
    a = admit("Asha")
    b = admit("Ravi")
    c = admit("Kiran")
    day = "2024-10-15"

    store.record_attendance(day, [a.id], [b.id], "Class 5")
    store.record_attendance(day, [b.id], [a.id, c.id], "Class 5")

    asha, ravi, kiran = (store.get_student(x.id) for x in (a, b, c))
    assert asha.attendance == [] and asha.absences == [day]
    assert ravi.attendance == [day] and ravi.absences == []
    assert kiran.attendance == [] and kiran.absences == [day]
    for s in store.state.students:
        assert not set(s.attendance) & set(s.absences)


def test_attendance_unlisted_student_is_cleared(store, admit):
    a = admit("Asha")
    store.record_attendance("2024-10-15", [a.id], [], "Class 5")
    store.record_attendance("2024-10-15", [], [], "Class 5")

    asha = store.get_student(a.id)
    assert asha.attendance == [] and asha.absences == []


def test_attendance_leaves_other_classes_alone(store, admit):
    a = admit("Asha", "Class 5")
    other = admit("Dev", "Class 6")
    before = store.get_student(other.id)

    store.record_attendance("2024-10-15", [a.id, other.id], [], "Class 5")

    assert store.get_student(other.id) == before
    assert events(store)[0] == "Attendance recorded for Class 5 on 2024-10-15"


# ------------------- marks -------------------
def test_bulk_marks_replace_previous_subject_entry(store, admit):
    a = admit("Asha")
    store.record_bulk_marks("Class 5", "Maths", [MarkEntry(student_id=a.id, marks=40, total=50)])
    store.record_bulk_marks("Class 5", "Maths", [MarkEntry(student_id=a.id, marks=45, total=50)])
    store.record_bulk_marks("Class 5", "Science", [MarkEntry(student_id=a.id, marks=30, total=50)])

    marks = {(m.subject, m.marks) for m in store.get_student(a.id).exam_marks}
    assert marks == {("Maths", 45), ("Science", 30)}
    assert events(store)[0] == "Exam results updated for Class 5 - Science"


def test_bulk_marks_award_top_three_with_ties_in_order(store, admit):
    students = [admit(name) for name in ("A", "B", "C", "D", "E")]
    entries = [
        MarkEntry(student_id=students[0].id, marks=30, total=50),
        MarkEntry(student_id=students[1].id, marks=45, total=50),
        MarkEntry(student_id=students[2].id, marks=80, total=100),
        MarkEntry(student_id=students[3].id, marks=40, total=50),
        MarkEntry(student_id=students[4].id, marks=10, total=50),
    ]

    store.record_bulk_marks("Class 5", "Maths", entries)

    starred = [s.name for s in store.state.students if STAR_STUDENT in s.badges]
    # B 0.9, C 0.8 and D 0.8 tie, C submitted first
    assert starred == ["B", "C", "D"]


def test_bulk_marks_revoke_badge_from_new_lower_ranks(store, admit):
    a, b, c, d = (admit(name) for name in ("A", "B", "C", "D"))
    store.record_bulk_marks(
        "Class 5",
        "Maths",
        [MarkEntry(student_id=s.id, marks=m, total=100) for s, m in ((a, 90), (b, 80), (c, 70), (d, 10))],
    )
    assert STAR_STUDENT in store.get_student(a.id).badges

    store.record_bulk_marks(
        "Class 5",
        "Maths",
        [MarkEntry(student_id=s.id, marks=m, total=100) for s, m in ((a, 5), (b, 80), (c, 70), (d, 95))],
    )

    assert store.get_student(a.id).badges == []
    assert store.get_student(d.id).badges == [STAR_STUDENT]
    assert store.get_student(b.id).badges.count(STAR_STUDENT) == 1


# ------------------- schedules & syllabus -------------------
def test_schedule_crud(store):
    task = store.add_schedule(ScheduleCreate(title="Mock test", time="10:00 AM", date="2024-10-15", type="training"))
    assert task.completed is False

    assert store.toggle_schedule(task.id).completed is True
    store.delete_schedule(task.id)

    assert store.state.schedules == []
    assert events(store) == [
        "Schedule removed: Mock test",
        "Schedule completed: Mock test",
        "Schedule added: Mock test on 2024-10-15",
    ]
    with pytest.raises(NotFoundError):
        store.toggle_schedule(task.id)


def test_syllabus_toggle_updates_class_progress(store, admit):
    a = admit("Asha", "Class 5")
    b = admit("Ravi", "Class 5")
    other = admit("Dev", "Class 6")
    fractions = store.add_syllabus_topic("Fractions", "Class 5")
    store.add_syllabus_topic("Decimals", "Class 5")
    store.add_syllabus_topic("Algebra", "Class 6")

    store.toggle_syllabus_topic(fractions.id)

    assert store.get_student(a.id).syllabus_progress == 50
    assert store.get_student(b.id).syllabus_progress == 50
    assert store.get_student(other.id).syllabus_progress == 0

    store.toggle_syllabus_topic(fractions.id)
    assert store.get_student(a.id).syllabus_progress == 0


def test_syllabus_delete(store):
    topic = store.add_syllabus_topic("Fractions", "Class 5")
    store.delete_syllabus_topic(topic.id)
    assert store.state.syllabus_topics == []
    with pytest.raises(NotFoundError):
        store.delete_syllabus_topic(topic.id)


# ------------------- audit & persistence -------------------
def test_audit_log_is_capped_newest_first(store, settings):
    for n in range(settings.audit_log_limit + 5):
        store.log_event(f"event {n}")

    logs = events(store)
    assert len(logs) == settings.audit_log_limit
    assert logs[0] == f"event {settings.audit_log_limit + 4}"
    assert logs[-1] == "event 5"


def test_every_mutation_is_persisted(store, make_store, admit):
    a = admit("Asha")
    store.toggle_fee(a.id, "2024-10")
    store.add_syllabus_topic("Fractions", "Class 5")

    reloaded = make_store()

    assert reloaded.state == store.state


def test_failed_write_leaves_memory_unchanged(make_store, backend):
    storage = FailingStorage(backend)
    store = make_store(storage)

    store.admit_student(StudentCreate(name="Asha", student_class="Class 5"))
    before = store.state
    storage.fail = True

    with pytest.raises(StorageWriteError):
        store.admit_student(StudentCreate(name="Ravi", student_class="Class 5"))

    assert store.state is before
    assert [s.name for s in store.state.students] == ["Asha"]


def test_concurrent_admissions_are_all_kept(make_store):
    storage = SlowStorage()
    store = make_store(storage)

    def admit_batch(prefix):
        for n in range(20):
            store.admit_student(StudentCreate(name=f"{prefix}{n}", student_class="Class 5"))

    threads = [threading.Thread(target=admit_batch, args=(f"T{t}-",)) for t in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.state.students) == 80
    assert len(store.state.audit_logs) == 80
    assert make_store(storage).state == store.state


def test_attendance_present_wins_over_absent(store, admit):
    a = admit("Asha")

    store.record_attendance("2024-10-15", [a.id], [a.id], "Class 5")

    asha = store.get_student(a.id)
    assert asha.attendance == ["2024-10-15"]
    assert asha.absences == []


def test_promote_from_unknown_class_is_refused(store):
    store.admit_student(StudentCreate.model_construct(name="Old", student_class="Nursery"))
    legacy = store.state.students[0]

    with pytest.raises(InvalidOperationError):
        store.promote_student(legacy.id)

    assert store.get_student(legacy.id).student_class == "Nursery"
    assert events(store) == ["New Admission: Old"]


def test_edit_ignores_null_fields(store, admit):
    asha = admit("Asha")

    updated = store.edit_student(asha.id, StudentUpdate(name=None, student_class=None, address="MG Road"))

    assert updated.name == "Asha"
    assert updated.student_class == "Class 5"
    assert updated.address == "MG Road"
