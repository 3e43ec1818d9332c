"""Small dispatching helpers to decouple Celery from callers."""
from __future__ import annotations

from typing import Any, Dict

from ..config.celery import celery_app


class TaskDispatcher:
    """Internal facade used by application layer to schedule tasks."""

    def send_masterclass_invite(self, masterclass_id: str, email: str, first_name: str = "", last_name: str = "") -> None:
        """Fire-and-forget helper for masterclass calendar invites."""
        self.enqueue(
            "infrastructure.tasks.tasks.invites.send_masterclass_invite",
            kwargs={
                "masterclass_id": masterclass_id,
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
            },
        )

    def enqueue(self, task_name: str, *, args: tuple | None = None, kwargs: Dict[str, Any] | None = None) -> None:
        """Generic escape hatch for scheduling arbitrary tasks by name."""
        task = celery_app.tasks.get(task_name)
        if celery_app.conf.task_always_eager and task is not None:
            # send_task bypasses eager mode
            task.apply(args=args or (), kwargs=kwargs or {})
            return
        celery_app.send_task(task_name, args=args or (), kwargs=kwargs or {})
