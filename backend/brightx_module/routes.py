from fastapi import APIRouter, Depends, Query, Response, status

from .gate import PendingAction
from .middleware import get_admin_session, get_store, require_admin
from .schemas import (
    AppState,
    AttendanceRequest,
    AuditLogEntry,
    BulkMarksRequest,
    CelebrationOut,
    ConfirmationRequired,
    DashboardStats,
    LoginRequest,
    LoginResponse,
    PendingConfirmationOut,
    Schedule,
    ScheduleCreate,
    SelectionOut,
    Student,
    StudentCreate,
    StudentUpdate,
    SyllabusTopic,
    SyllabusTopicCreate,
)
from .security import AdminSession
from .store import StateStore
from .views import ALL_CLASSES, archived_students, search_students

router = APIRouter(prefix="/api/v1/brightx", tags=["BrightX Admin"])


def _pending_out(action: PendingAction) -> PendingConfirmationOut:
    return PendingConfirmationOut(operation=action.operation, params=action.params, description=action.description)


# ------------------- AUTH -------------------
@router.post("/auth/login", response_model=LoginResponse)
def login(payload: LoginRequest, session: AdminSession = Depends(get_admin_session)):
    return LoginResponse(access_token=session.login(payload.password))


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(session: AdminSession = Depends(get_admin_session), _: str = Depends(require_admin)):
    session.logout()


# ------------------- READS -------------------
@router.get("/state", response_model=AppState)
def read_state(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.state


@router.get("/dashboard", response_model=DashboardStats)
def read_dashboard(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.dashboard()


@router.get("/students", response_model=list[Student])
def list_students(
    q: str = "",
    student_class: str = Query(ALL_CLASSES, alias="class"),
    store: StateStore = Depends(get_store),
    _: str = Depends(require_admin),
):
    return search_students(store.state.students, q, student_class)


@router.get("/students/archived", response_model=list[Student])
def list_archived(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return archived_students(store.state.students)


@router.get("/students/{student_id}", response_model=Student)
def get_student(student_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.get_student(student_id)


@router.get("/audit-logs", response_model=list[AuditLogEntry])
def list_audit_logs(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.state.audit_logs


@router.get("/celebration", response_model=CelebrationOut)
def read_celebration(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return CelebrationOut(student_name=store.celebration)


# ------------------- STUDENTS -------------------
@router.post("/students", response_model=Student, status_code=status.HTTP_201_CREATED)
def admit_student(payload: StudentCreate, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.admit_student(payload)


@router.patch("/students/{student_id}", response_model=Student)
def edit_student(
    student_id: str,
    payload: StudentUpdate,
    store: StateStore = Depends(get_store),
    _: str = Depends(require_admin),
):
    return store.edit_student(student_id, payload)


@router.delete(
    "/students/{student_id}",
    response_model=ConfirmationRequired,
    status_code=status.HTTP_202_ACCEPTED,
)
def delete_student(student_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return ConfirmationRequired(pending=_pending_out(store.delete_student(student_id)))


@router.post("/students/{student_id}/fees/{month}")
def toggle_fee(
    student_id: str,
    month: str,
    response: Response,
    store: StateStore = Depends(get_store),
    _: str = Depends(require_admin),
):
    result = store.toggle_fee(student_id, month)
    if isinstance(result, PendingAction):
        response.status_code = status.HTTP_202_ACCEPTED
        return ConfirmationRequired(pending=_pending_out(result))
    return result


@router.post("/students/{student_id}/promote", response_model=Student)
def promote_student(student_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.promote_student(student_id)


@router.post("/students/{student_id}/deactivation", response_model=Student)
def toggle_deactivation(student_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.toggle_deactivation(student_id)


@router.put("/selection/{student_id}", response_model=SelectionOut)
def select_student(student_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    store.select_student(student_id)
    return SelectionOut(selected_student_id=store.selected_student_id)


@router.delete("/selection", response_model=SelectionOut)
def clear_selection(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    store.select_student(None)
    return SelectionOut()


# ------------------- CLASSROOM -------------------
@router.post("/attendance", response_model=list[Student])
def record_attendance(
    payload: AttendanceRequest,
    store: StateStore = Depends(get_store),
    _: str = Depends(require_admin),
):
    return store.record_attendance(payload.date, payload.present_ids, payload.absent_ids, payload.target_class)


@router.post("/marks", response_model=list[Student])
def record_marks(payload: BulkMarksRequest, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.record_bulk_marks(payload.target_class, payload.subject, payload.entries)


# ------------------- SCHEDULES -------------------
@router.post("/schedules", response_model=Schedule, status_code=status.HTTP_201_CREATED)
def add_schedule(payload: ScheduleCreate, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.add_schedule(payload)


@router.post("/schedules/{schedule_id}/toggle", response_model=Schedule)
def toggle_schedule(schedule_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.toggle_schedule(schedule_id)


@router.delete("/schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(schedule_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    store.delete_schedule(schedule_id)


# ------------------- SYLLABUS -------------------
@router.post("/syllabus", response_model=SyllabusTopic, status_code=status.HTTP_201_CREATED)
def add_topic(payload: SyllabusTopicCreate, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.add_syllabus_topic(payload.title, payload.target_class)


@router.post("/syllabus/{topic_id}/toggle", response_model=SyllabusTopic)
def toggle_topic(topic_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return store.toggle_syllabus_topic(topic_id)


@router.delete("/syllabus/{topic_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_topic(topic_id: str, store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    store.delete_syllabus_topic(topic_id)


# ------------------- CONFIRMATION -------------------
@router.get("/confirmation", response_model=PendingConfirmationOut | None)
def read_confirmation(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    pending = store.gate.pending
    return _pending_out(pending) if pending else None


@router.post("/confirmation/confirm", response_model=PendingConfirmationOut)
def confirm(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return _pending_out(store.confirm_pending())


@router.post("/confirmation/cancel", response_model=PendingConfirmationOut)
def cancel(store: StateStore = Depends(get_store), _: str = Depends(require_admin)):
    return _pending_out(store.cancel_pending())
