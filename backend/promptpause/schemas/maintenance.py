"""
Prompt & Pause Backend — Maintenance Schemas
=============================================

What:  API contract of the maintenance admin endpoints and the value types of
       the batch notifier (Recipient, BatchResult, SendSummary).

Field-level shape checks (date and time formats, non-empty service list)
live here and surface as FastAPI's 422. Business rules (weekend-only, end
after start, state transitions) live in MaintenanceService and surface as 400.
"""

import uuid
from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, StrictBool, field_validator


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    PLANNED = "planned"
    COMPLETED = "completed"


def _clean_services(services: Optional[List[str]]) -> Optional[List[str]]:
    if services is None:
        return None
    cleaned = [s.strip() for s in services if s and s.strip()]
    if not cleaned:
        raise ValueError("affected_services must contain at least one service")
    return cleaned


# ══════════════════════════════════════════════════════════════════════════
# Window CRUD
# ══════════════════════════════════════════════════════════════════════════

class MaintenanceWindowCreate(BaseModel):
    scheduled_date: date = Field(description="YYYY-MM-DD, must be a Saturday or Sunday")
    start_time: time = Field(description="HH:MM or HH:MM:SS")
    end_time: time = Field(description="HH:MM or HH:MM:SS, after start_time")
    affected_services: List[str] = Field(min_length=1)
    description: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("affected_services")
    @classmethod
    def validate_services(cls, v: List[str]) -> List[str]:
        return _clean_services(v)


class MaintenanceWindowUpdate(BaseModel):
    scheduled_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    affected_services: Optional[List[str]] = None
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[MaintenanceStatus] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("affected_services")
    @classmethod
    def validate_services(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_services(v)


class MaintenanceNotificationResponse(BaseModel):
    id: uuid.UUID
    notification_type: NotificationType
    recipient_count: int
    sent_by: Optional[str] = None
    sent_at: datetime
    batch_details: dict = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class MaintenanceWindowResponse(BaseModel):
    id: uuid.UUID
    scheduled_date: date
    start_time: time
    end_time: time
    affected_services: List[str]
    description: Optional[str] = None
    status: MaintenanceStatus
    notification_sent: bool
    notification_sent_at: Optional[datetime] = None
    completion_notification_sent: bool
    completion_notification_sent_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class MaintenanceWindowDetail(MaintenanceWindowResponse):
    notifications: List[MaintenanceNotificationResponse] = Field(default_factory=list)


class MaintenanceWindowListResponse(BaseModel):
    windows: List[MaintenanceWindowResponse]
    total_count: int


# ══════════════════════════════════════════════════════════════════════════
# Maintenance mode
# ══════════════════════════════════════════════════════════════════════════

class MaintenanceModeUpdate(BaseModel):
    is_enabled: StrictBool
    notes: Optional[str] = Field(default=None, max_length=2000)


class MaintenanceModeResponse(BaseModel):
    is_enabled: bool
    enabled_by: Optional[str] = None
    enabled_at: Optional[datetime] = None
    disabled_at: Optional[datetime] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Batch notifier
# ══════════════════════════════════════════════════════════════════════════

class NotifyStartRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)


class NotifyCompleteRequest(BaseModel):
    improvements: Optional[str] = Field(default=None, max_length=4000)
    notes: Optional[str] = Field(default=None, max_length=2000)


class Recipient(BaseModel):
    email: str
    user_id: uuid.UUID
    preferred_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.preferred_name or self.email.split("@")[0]


class FailureKind(str, Enum):
    # Provider accepted the batch but refused this message
    REJECTED = "rejected"
    # Provider refused the whole batch (non-2xx other than auth)
    BATCH_REJECTED = "batch_rejected"
    # 2xx with a body we could not read
    MALFORMED_RESPONSE = "malformed_response"


class RecipientFailure(BaseModel):
    email: str
    error_kind: FailureKind
    message: Optional[str] = None


class BatchResult(BaseModel):
    batch_index: int
    attempted: int
    succeeded: int
    failed: List[RecipientFailure] = Field(default_factory=list)
    attempted_emails: List[str] = Field(default_factory=list, exclude=True)


class SendSummary(BaseModel):
    notification_type: NotificationType
    window_id: uuid.UUID
    total_recipients: int
    total_succeeded: int
    total_failed: int
    batches: List[BatchResult] = Field(default_factory=list)

    def audit_details(self) -> dict:
        """Compact form stored in maintenance_notifications.batch_details."""
        return {
            "total_recipients": self.total_recipients,
            "success_count": self.total_succeeded,
            "failed_count": self.total_failed,
            "batches": [
                {
                    "batch_index": b.batch_index,
                    "attempted": b.attempted,
                    "succeeded": b.succeeded,
                    "failed": len(b.failed),
                }
                for b in self.batches
            ],
            "failed_recipients": [
                {"email": f.email, "error_kind": f.error_kind.value}
                for b in self.batches
                for f in b.failed
            ],
        }


class NotifyResponse(BaseModel):
    success: bool = True
    message: str
    batch_result: SendSummary
