from datetime import datetime

from .schemas import AuditLogEntry


TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"


def append_entry(
    logs: list[AuditLogEntry],
    event: str,
    *,
    entry_id: str,
    now: datetime,
    limit: int,
) -> list[AuditLogEntry]:
    """Return a new log with ``event`` first, keeping only the ``limit`` most recent entries."""
    entry = AuditLogEntry(id=entry_id, event=event, timestamp=now.strftime(TIMESTAMP_FORMAT))
    return [entry, *logs][:limit]
