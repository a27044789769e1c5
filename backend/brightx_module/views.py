"""Read-side computations over the current state.

Nothing here is cached; every call recomputes from the collections it is given.
"""

from datetime import date

from .config import MONTHS, Settings
from .schemas import AppState, DashboardStats, FeeReminders, Student, StudentStatus, SyllabusTopic


ALL_CLASSES = "All"


def month_id(year: int, month: int) -> str:
    return f"{year}-{month}"


def active_students(students: list[Student]) -> list[Student]:
    return [s for s in students if s.status == StudentStatus.ACTIVE]


def archived_students(students: list[Student]) -> list[Student]:
    return [s for s in students if s.status != StudentStatus.ACTIVE]


def search_students(students: list[Student], query: str = "", student_class: str = ALL_CLASSES) -> list[Student]:
    """Active students whose name (any case) or phone contains ``query``, optionally in one class."""
    needle = query.lower()
    return [
        s
        for s in active_students(students)
        if (needle in s.name.lower() or query in s.student_phone)
        and (student_class == ALL_CLASSES or s.student_class == student_class)
    ]


def syllabus_progress(topics: list[SyllabusTopic], target_class: str) -> int:
    class_topics = [t for t in topics if t.target_class == target_class]
    if not class_topics:
        return 0
    completed = sum(1 for t in class_topics if t.completed)
    # half-up rounding of 100 * completed / total
    return (200 * completed + len(class_topics)) // (2 * len(class_topics))


def fee_reminders(active: list[Student], current_month: str, today: date, settings: Settings) -> FeeReminders:
    unpaid = [s for s in active if current_month not in s.paid_months]
    preview = unpaid[: settings.reminder_preview]
    return FeeReminders(
        show=today.day >= settings.reminder_day and len(unpaid) > 0,
        unpaid_students=unpaid,
        preview=preview,
        overflow=len(unpaid) - len(preview),
    )


def dashboard_stats(state: AppState, today: date, settings: Settings) -> DashboardStats:
    active = active_students(state.students)
    current_month = month_id(settings.current_year, today.month)
    today_key = today.isoformat()
    return DashboardStats(
        total=len(active),
        deactivated=len(archived_students(state.students)),
        paid=sum(1 for s in active if current_month in s.paid_months),
        attendance=sum(1 for s in active if today_key in s.attendance),
        current_month_id=current_month,
        current_month_name=MONTHS[today.month - 1],
        reminders=fee_reminders(active, current_month, today, settings),
    )
