# src/dayroute/storage/fields.py

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..core.errors import ValidationError
from ..core.models import Task, TaskStatus
from ..core.timeutil import is_valid_hhmm, utc_now

# Only these change after a task is created.
UPDATABLE_TASK_FIELDS = frozenset(
    {"status", "confirmed_at", "start_time", "end_time", "planned_start_time", "planned_end_time"}
)


def normalize_task_update(current: Task, fields: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a partial task update and enforce the confirmed_at invariant:
    confirmed_at is set if and only if status == confirmed.
    """
    out: dict[str, Any] = {}

    for name in ("start_time", "end_time", "planned_start_time", "planned_end_time"):
        if fields.get(name) is not None:
            value = str(fields[name])
            if not is_valid_hhmm(value):
                raise ValidationError(f"{name} must be HH:mm, got {value!r}")
            out[name] = value

    status = current.status
    if fields.get("status") is not None:
        try:
            status = TaskStatus(fields["status"])
        except ValueError as e:
            raise ValidationError(f"unknown task status {fields['status']!r}") from e
        out["status"] = status

    confirmed_at: datetime | None = fields.get("confirmed_at") or current.confirmed_at
    if status == TaskStatus.CONFIRMED:
        out["confirmed_at"] = confirmed_at or utc_now()
    else:
        out["confirmed_at"] = None

    return out
