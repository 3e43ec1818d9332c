"""
Enrollment domain events.

Emitted after an enrollment has been committed so that side channels
(calendar invites, emails) can react without touching the transaction.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class EnrollmentGranted:
    enrollment_id: int
    product_type: str
    product_id: str
    student_external_id: str
    student_email: str
    student_first_name: str = ""
    student_last_name: str = ""
    product_title: Optional[str] = None
    provider: Optional[str] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
