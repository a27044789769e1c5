"""Data shapes of the coaching-center state and of the HTTP payloads around it.

Everything is stored and served with camelCase keys (``studentClass``,
``paidMonths`` ...) so a blob written by the dashboard front end loads as-is.
"""

import enum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import CLASSES


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DEACTIVATED = "DEACTIVATED"


class ExamMark(CamelModel):
    subject: str
    marks: float
    total: float


class Student(CamelModel):
    id: str
    name: str
    dob: str = ""
    guardian_name: str = ""
    guardian_phone: str = ""
    student_phone: str = ""
    address: str = ""
    student_class: str
    admission_date: str = ""
    status: StudentStatus = StudentStatus.ACTIVE
    monthly_fee: float = 0
    # month ids such as "2024-10"
    paid_months: list[str] = Field(default_factory=list)
    # present / absent ISO dates, never both for the same day
    attendance: list[str] = Field(default_factory=list)
    absences: list[str] = Field(default_factory=list)
    exam_marks: list[ExamMark] = Field(default_factory=list)
    syllabus_progress: int = 0
    badges: list[str] = Field(default_factory=list)
    profile_icon: str | None = None

    @field_validator("paid_months", "attendance", "absences", "exam_marks", "badges", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value


class Schedule(CamelModel):
    id: str
    title: str
    time: str
    type: Literal["training", "admin"]
    completed: bool = False
    date: str


class SyllabusTopic(CamelModel):
    id: str
    title: str
    completed: bool = False
    target_class: str


class AuditLogEntry(CamelModel):
    id: str
    event: str
    timestamp: str


class AppState(CamelModel):
    students: list[Student] = Field(default_factory=list)
    schedules: list[Schedule] = Field(default_factory=list)
    syllabus_topics: list[SyllabusTopic] = Field(default_factory=list)
    audit_logs: list[AuditLogEntry] = Field(default_factory=list)


# ------------------- REQUEST PAYLOADS -------------------
def _check_class(value: str) -> str:
    if value not in CLASSES:
        raise ValueError(f"Unknown class: {value}")
    return value


ClassName = Annotated[str, AfterValidator(_check_class)]


class StudentCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    dob: str = ""
    guardian_name: str = ""
    guardian_phone: str = ""
    student_phone: str = ""
    address: str = ""
    student_class: ClassName
    admission_date: str = ""
    monthly_fee: float = Field(default=0, ge=0)
    profile_icon: str | None = None


class StudentUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    dob: str | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    student_phone: str | None = None
    address: str | None = None
    student_class: ClassName | None = None
    admission_date: str | None = None
    monthly_fee: float | None = Field(default=None, ge=0)
    profile_icon: str | None = None


class AttendanceRequest(CamelModel):
    date: str
    target_class: str
    present_ids: list[str] = Field(default_factory=list)
    absent_ids: list[str] = Field(default_factory=list)


class MarkEntry(CamelModel):
    student_id: str
    marks: float = Field(ge=0)
    total: float = Field(gt=0)


class BulkMarksRequest(CamelModel):
    target_class: str
    subject: str = Field(min_length=1)
    entries: list[MarkEntry]


class ScheduleCreate(CamelModel):
    title: str = Field(min_length=1)
    time: str
    date: str
    type: Literal["training", "admin"]


class SyllabusTopicCreate(CamelModel):
    title: str = Field(min_length=1)
    target_class: ClassName


class LoginRequest(BaseModel):
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ------------------- RESPONSES -------------------
class FeeReminders(CamelModel):
    show: bool
    unpaid_students: list[Student]
    preview: list[Student]
    overflow: int


class DashboardStats(CamelModel):
    total: int
    deactivated: int
    paid: int
    attendance: int
    current_month_id: str
    current_month_name: str
    reminders: FeeReminders


class PendingConfirmationOut(CamelModel):
    operation: str
    params: dict[str, str]
    description: str


class ConfirmationRequired(CamelModel):
    message: str = "Security confirmation required"
    pending: PendingConfirmationOut


class CelebrationOut(CamelModel):
    student_name: str | None = None


class SelectionOut(CamelModel):
    selected_student_id: str | None = None
