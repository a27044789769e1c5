"""The single owned state container and every mutation applied to it.

Each mutator builds the complete next ``AppState`` (with its audit entry),
persists it through the storage backend and only then makes it current. A
failed write therefore leaves the in-memory state untouched and the error
propagates to the caller.
"""

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterable
from datetime import date, datetime
from functools import wraps

from .audit import append_entry
from .config import CLASSES, STAR_STUDENT, Settings, settings as default_settings
from .errors import InvalidOperationError, NotFoundError
from .gate import DELETE_STUDENT, UNMARK_FEE, ConfirmationGate, PendingAction
from .schemas import (
    AppState,
    DashboardStats,
    ExamMark,
    MarkEntry,
    Schedule,
    ScheduleCreate,
    Student,
    StudentCreate,
    StudentStatus,
    StudentUpdate,
    SyllabusTopic,
)
from .storage import StorageBackend, load_state, save_state
from .views import dashboard_stats, syllabus_progress


logger = logging.getLogger(__name__)

IMMUTABLE_STUDENT_FIELDS = {"id"}


def _new_id() -> str:
    return uuid.uuid4().hex


def _mark_day(student: Student, day: str, present_ids: set[str], absent_ids: set[str]) -> Student:
    attendance = [d for d in student.attendance if d != day]
    absences = [d for d in student.absences if d != day]
    if student.id in present_ids:
        attendance.append(day)
    elif student.id in absent_ids:
        absences.append(day)
    return student.model_copy(update={"attendance": attendance, "absences": absences})


def _ratio(entry: MarkEntry) -> float:
    return entry.marks / entry.total if entry.total else 0.0


def _locked(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class StateStore:
    def __init__(
        self,
        backend: StorageBackend,
        *,
        settings: Settings = default_settings,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = datetime.now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backend = backend
        self.settings = settings
        self.gate = ConfirmationGate()
        self.selected_student_id: str | None = None
        self._id_factory = id_factory
        self._clock = clock
        self._monotonic = monotonic
        self._celebration: tuple[str, float] | None = None
        # request handlers run in a threadpool; one mutation at a time
        self._lock = threading.RLock()
        self.state = load_state(backend, settings.storage_key)
        logger.info(
            f"Loaded {len(self.state.students)} students, {len(self.state.schedules)} schedules, "
            f"{len(self.state.syllabus_topics)} topics"
        )

    # ------------------- internals -------------------
    def _commit(
        self,
        event: str,
        *,
        students: list[Student] | None = None,
        schedules: list[Schedule] | None = None,
        syllabus_topics: list[SyllabusTopic] | None = None,
    ) -> AppState:
        next_state = AppState(
            students=self.state.students if students is None else students,
            schedules=self.state.schedules if schedules is None else schedules,
            syllabus_topics=self.state.syllabus_topics if syllabus_topics is None else syllabus_topics,
            audit_logs=append_entry(
                self.state.audit_logs,
                event,
                entry_id=self._id_factory(),
                now=self._clock(),
                limit=self.settings.audit_log_limit,
            ),
        )
        save_state(self.backend, self.settings.storage_key, next_state)
        self.state = next_state
        logger.info(event)
        return next_state

    def _replace_student(self, updated: Student) -> list[Student]:
        return [updated if s.id == updated.id else s for s in self.state.students]

    def get_student(self, student_id: str) -> Student:
        for student in self.state.students:
            if student.id == student_id:
                return student
        logger.warning(f"Student not found: {student_id}")
        raise NotFoundError("Student", student_id)

    def get_schedule(self, schedule_id: str) -> Schedule:
        for schedule in self.state.schedules:
            if schedule.id == schedule_id:
                return schedule
        raise NotFoundError("Schedule", schedule_id)

    def get_topic(self, topic_id: str) -> SyllabusTopic:
        for topic in self.state.syllabus_topics:
            if topic.id == topic_id:
                return topic
        raise NotFoundError("Syllabus topic", topic_id)

    @_locked
    def log_event(self, event: str) -> None:
        self._commit(event)

    # ------------------- students -------------------
    @_locked
    def admit_student(self, data: StudentCreate) -> Student:
        student = Student(
            **data.model_dump(),
            id=self._id_factory(),
            status=StudentStatus.ACTIVE,
        )
        self._commit(f"New Admission: {student.name}", students=[*self.state.students, student])
        return student

    @_locked
    def edit_student(self, student_id: str, changes: StudentUpdate | dict) -> Student:
        current = self.get_student(student_id)
        if isinstance(changes, StudentUpdate):
            # null means "leave unchanged"
            changes = changes.model_dump(exclude_unset=True, exclude_none=True)
        merged = {**current.model_dump(), **{k: v for k, v in changes.items() if k not in IMMUTABLE_STUDENT_FIELDS}}
        updated = Student.model_validate(merged)
        self._commit(f"Updated profile for Student: {updated.name}", students=self._replace_student(updated))
        return updated

    @_locked
    def select_student(self, student_id: str | None) -> None:
        if student_id is not None:
            self.get_student(student_id)
        self.selected_student_id = student_id

    @_locked
    def delete_student(self, student_id: str) -> PendingAction:
        student = self.get_student(student_id)
        return self.gate.request(
            PendingAction(
                operation=DELETE_STUDENT,
                params={"student_id": student_id},
                description=f"Permanently delete {student.name}",
            )
        )

    def _delete_student_now(self, student_id: str) -> None:
        student = self.get_student(student_id)
        self._commit(
            f"Security Authorized: Permanent Delete Student - {student.name}",
            students=[s for s in self.state.students if s.id != student_id],
        )
        if self.selected_student_id == student_id:
            self.selected_student_id = None

    @_locked
    def toggle_fee(self, student_id: str, month: str) -> Student | PendingAction:
        """Mark ``month`` paid right away; un-marking a paid month waits for confirmation."""
        student = self.get_student(student_id)
        if month in student.paid_months:
            return self.gate.request(
                PendingAction(
                    operation=UNMARK_FEE,
                    params={"student_id": student_id, "month": month},
                    description=f"Uncheck fee for {student.name} ({month})",
                )
            )
        updated = student.model_copy(update={"paid_months": [*student.paid_months, month]})
        self._commit(f"Fee Paid: {student.name} for {month}", students=self._replace_student(updated))
        return updated

    def _unmark_fee_now(self, student_id: str, month: str) -> None:
        student = self.get_student(student_id)
        updated = student.model_copy(update={"paid_months": [m for m in student.paid_months if m != month]})
        self._commit(
            f"Security Authorized: Unchecked fee for {student.name} ({month})",
            students=self._replace_student(updated),
        )

    @_locked
    def promote_student(self, student_id: str) -> Student:
        student = self.get_student(student_id)
        if student.student_class not in CLASSES:
            raise InvalidOperationError(f"Unknown class: {student.student_class}")
        index = CLASSES.index(student.student_class)
        if index >= len(CLASSES) - 1:
            logger.warning(f"Promotion refused for {student.name}: already in {student.student_class}")
            raise InvalidOperationError("Student is already in the highest class!")

        next_class = CLASSES[index + 1]
        updated = student.model_copy(update={"student_class": next_class})
        self._commit(
            f"Student Promoted: {student.name} from {student.student_class} to {next_class}",
            students=self._replace_student(updated),
        )
        self._celebration = (student.name, self._monotonic() + self.settings.celebration_seconds)
        return updated

    @property
    def celebration(self) -> str | None:
        """Name of the most recently promoted student while the celebration lasts."""
        if self._celebration is None:
            return None
        name, expires_at = self._celebration
        if self._monotonic() >= expires_at:
            self._celebration = None
            return None
        return name

    @_locked
    def toggle_deactivation(self, student_id: str) -> Student:
        student = self.get_student(student_id)
        if student.status == StudentStatus.ACTIVE:
            new_status, label = StudentStatus.DEACTIVATED, "Archived"
        else:
            new_status, label = StudentStatus.ACTIVE, "Reactivated"
        updated = student.model_copy(update={"status": new_status})
        self._commit(f"Account {label}: {student.name}", students=self._replace_student(updated))
        return updated

    # ------------------- classroom -------------------
    @_locked
    def record_attendance(
        self, day: str, present_ids: Iterable[str], absent_ids: Iterable[str], target_class: str
    ) -> list[Student]:
        present, absent = set(present_ids), set(absent_ids)
        students = [
            _mark_day(s, day, present, absent) if s.student_class == target_class else s
            for s in self.state.students
        ]
        self._commit(f"Attendance recorded for {target_class} on {day}", students=students)
        return [s for s in students if s.student_class == target_class]

    @_locked
    def record_bulk_marks(self, target_class: str, subject: str, entries: list[MarkEntry]) -> list[Student]:
        """Store one ``subject`` mark per submitted student and re-rank the Star Student badge.

        Only entries for students of ``target_class`` are ranked. The first
        entry per student counts, and ties keep submission order.
        """
        class_ids = {s.id for s in self.state.students if s.student_class == target_class}
        by_student: dict[str, MarkEntry] = {}
        for entry in entries:
            if entry.student_id in class_ids:
                by_student.setdefault(entry.student_id, entry)

        ranked = sorted(by_student.values(), key=_ratio, reverse=True)
        top_ids = {e.student_id for e in ranked[:3]}

        students = []
        for s in self.state.students:
            entry = by_student.get(s.id) if s.student_class == target_class else None
            if entry is None:
                students.append(s)
                continue
            marks = [m for m in s.exam_marks if m.subject != subject]
            marks.append(ExamMark(subject=subject, marks=entry.marks, total=entry.total))
            badges = [b for b in s.badges if b != STAR_STUDENT]
            if s.id in top_ids:
                badges.append(STAR_STUDENT)
            students.append(s.model_copy(update={"exam_marks": marks, "badges": badges}))

        self._commit(f"Exam results updated for {target_class} - {subject}", students=students)
        return [s for s in students if s.student_class == target_class]

    # ------------------- schedules -------------------
    @_locked
    def add_schedule(self, data: ScheduleCreate) -> Schedule:
        schedule = Schedule(**data.model_dump(), id=self._id_factory(), completed=False)
        self._commit(
            f"Schedule added: {schedule.title} on {schedule.date}",
            schedules=[*self.state.schedules, schedule],
        )
        return schedule

    @_locked
    def toggle_schedule(self, schedule_id: str) -> Schedule:
        schedule = self.get_schedule(schedule_id)
        updated = schedule.model_copy(update={"completed": not schedule.completed})
        self._commit(
            f"Schedule {'completed' if updated.completed else 'reopened'}: {schedule.title}",
            schedules=[updated if s.id == schedule_id else s for s in self.state.schedules],
        )
        return updated

    @_locked
    def delete_schedule(self, schedule_id: str) -> None:
        schedule = self.get_schedule(schedule_id)
        self._commit(
            f"Schedule removed: {schedule.title}",
            schedules=[s for s in self.state.schedules if s.id != schedule_id],
        )

    # ------------------- syllabus -------------------
    @_locked
    def add_syllabus_topic(self, title: str, target_class: str) -> SyllabusTopic:
        topic = SyllabusTopic(id=self._id_factory(), title=title, target_class=target_class, completed=False)
        self._commit(
            f"Syllabus topic added for {target_class}: {title}",
            syllabus_topics=[*self.state.syllabus_topics, topic],
        )
        return topic

    @_locked
    def toggle_syllabus_topic(self, topic_id: str) -> SyllabusTopic:
        """Flip a topic and rewrite ``syllabusProgress`` on every student of its class."""
        topic = self.get_topic(topic_id)
        updated = topic.model_copy(update={"completed": not topic.completed})
        topics = [updated if t.id == topic_id else t for t in self.state.syllabus_topics]
        progress = syllabus_progress(topics, topic.target_class)
        students = [
            s.model_copy(update={"syllabus_progress": progress}) if s.student_class == topic.target_class else s
            for s in self.state.students
        ]
        self._commit(
            f"Syllabus {'completed' if updated.completed else 'reopened'}: {topic.title} "
            f"({topic.target_class}, {progress}%)",
            students=students,
            syllabus_topics=topics,
        )
        return updated

    @_locked
    def delete_syllabus_topic(self, topic_id: str) -> None:
        topic = self.get_topic(topic_id)
        self._commit(
            f"Syllabus topic removed: {topic.title} ({topic.target_class})",
            syllabus_topics=[t for t in self.state.syllabus_topics if t.id != topic_id],
        )

    # ------------------- confirmation -------------------
    @_locked
    def confirm_pending(self) -> PendingAction:
        action = self.gate.take()
        if action.operation == DELETE_STUDENT:
            self._delete_student_now(action.params["student_id"])
        elif action.operation == UNMARK_FEE:
            self._unmark_fee_now(action.params["student_id"], action.params["month"])
        else:
            raise InvalidOperationError(f"Unsupported confirmation: {action.operation}")
        return action

    @_locked
    def cancel_pending(self) -> PendingAction:
        return self.gate.cancel()

    # ------------------- reads -------------------
    def dashboard(self, today: date | None = None) -> DashboardStats:
        return dashboard_stats(self.state, today or self._clock().date(), self.settings)
