"""
Collaborators of the complaint lifecycle services.

Each collaborator is declared as a Protocol and shipped with a SQLAlchemy
implementation bound to the caller's session, so a service's writes and its
collaborators' writes commit or roll back together.

- AuditSink           -> ActivityLogAuditSink (activity_log table, append-only)
- NotificationGateway -> DatabaseNotificationGateway (notifications table)
- RecipientDirectory  -> SqlRecipientDirectory
- PaymentLookup       -> SqlOrderLookup
- OrderLookup         -> SqlOrderLookup
- TenantStore         -> SqlTenantStore
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.complaint import Actor
from ...models.db_models import (
    ActivityLogDB, NotificationDB, OrderDB, PaymentTransactionDB, TenantDB, UserDB,
    ADMIN_ROLES,
)
from .errors import NotificationDeliveryError
from .notifications import ComplaintNotification


# =============================================================================
# AUDIT
# =============================================================================

@dataclass(frozen=True)
class AuditEvent:
    """One immutable activity record."""
    log_name: str
    event: str
    subject_type: str
    subject_id: str
    actor: Actor
    properties: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None


class AuditSink(Protocol):
    def append(self, event: AuditEvent) -> Any:
        ...

    def count(
        self,
        log_name: str,
        subject_type: str,
        subject_id: str,
        events: Sequence[str],
    ) -> int:
        ...


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class ActivityLogAuditSink:
    """Append-only writer over the activity_log table. Never updates or deletes."""

    def __init__(self, db: Session):
        self.db = db

    def append(self, event: AuditEvent) -> ActivityLogDB:
        record = ActivityLogDB(
            id=str(uuid4()),
            log_name=event.log_name,
            event=event.event,
            subject_type=event.subject_type,
            subject_id=event.subject_id,
            causer_type=event.actor.kind,
            causer_id=event.actor.user_id,
            properties=_jsonable(event.properties),
            created_at=event.timestamp or datetime.utcnow(),
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return record

    def count(
        self,
        log_name: str,
        subject_type: str,
        subject_id: str,
        events: Sequence[str],
    ) -> int:
        return self.db.query(ActivityLogDB).filter(
            ActivityLogDB.log_name == log_name,
            ActivityLogDB.subject_type == subject_type,
            ActivityLogDB.subject_id == subject_id,
            ActivityLogDB.event.in_(list(events)),
        ).count()

    def records_for(
        self,
        subject_type: str,
        subject_id: str,
        event: Optional[str] = None,
    ) -> List[ActivityLogDB]:
        query = self.db.query(ActivityLogDB).filter(
            ActivityLogDB.subject_type == subject_type,
            ActivityLogDB.subject_id == subject_id,
        )
        if event:
            query = query.filter(ActivityLogDB.event == event)
        return query.order_by(ActivityLogDB.created_at.asc()).all()


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class NotificationGateway(Protocol):
    def send(self, recipient: UserDB, notification: ComplaintNotification) -> Any:
        ...


class DatabaseNotificationGateway:
    """
    Database channel. Rows are flushed immediately so a failing channel
    surfaces as NotificationDeliveryError at send time.
    """

    def __init__(self, db: Session):
        self.db = db

    def send(self, recipient: UserDB, notification: ComplaintNotification) -> NotificationDB:
        row = NotificationDB(
            id=str(uuid4()),
            user_id=recipient.id,
            type=notification.type,
            title=notification.get_title(),
            body=notification.get_body(),
            data=_jsonable(notification.get_data()),
            action_url=notification.get_action_url(),
        )
        try:
            self.db.add(row)
            self.db.flush()
        except SQLAlchemyError as exc:
            raise NotificationDeliveryError(
                f"Failed to deliver {notification.type} to user {recipient.id}: {exc}"
            ) from exc
        return row


# =============================================================================
# DIRECTORIES / LOOKUPS
# =============================================================================

class RecipientDirectory(Protocol):
    def admins_and_super_admins(self) -> List[UserDB]:
        ...

    def get_user(self, user_id: Optional[str]) -> Optional[UserDB]:
        ...


class SqlRecipientDirectory:
    def __init__(self, db: Session):
        self.db = db

    def admins_and_super_admins(self) -> List[UserDB]:
        return self.db.query(UserDB).filter(
            UserDB.role.in_(ADMIN_ROLES)
        ).order_by(UserDB.created_at.asc()).all()

    def get_user(self, user_id: Optional[str]) -> Optional[UserDB]:
        if not user_id:
            return None
        return self.db.query(UserDB).filter(UserDB.id == user_id).first()


class PaymentLookup(Protocol):
    def successful_payment_for(self, order_id: Optional[str]) -> Optional[PaymentTransactionDB]:
        ...


class OrderLookup(Protocol):
    def order_number_for(self, order_id: Optional[str]) -> Optional[str]:
        ...


class SqlOrderLookup:
    """Read-only view over orders and their payment transactions."""

    def __init__(self, db: Session):
        self.db = db

    def successful_payment_for(self, order_id: Optional[str]) -> Optional[PaymentTransactionDB]:
        """First successful payment transaction for the order, if any."""
        if not order_id:
            return None
        return self.db.query(PaymentTransactionDB).filter(
            PaymentTransactionDB.order_id == order_id,
            PaymentTransactionDB.status == "successful",
        ).order_by(PaymentTransactionDB.created_at.asc()).first()

    def order_number_for(self, order_id: Optional[str]) -> Optional[str]:
        if not order_id:
            return None
        order = self.db.query(OrderDB).filter(OrderDB.id == order_id).first()
        return order.order_number if order else None


class TenantStore(Protocol):
    def is_active(self, tenant_id: Optional[str]) -> Optional[bool]:
        ...

    def set_active(self, tenant_id: str, active: bool) -> bool:
        ...


class SqlTenantStore:
    def __init__(self, db: Session):
        self.db = db

    def is_active(self, tenant_id: Optional[str]) -> Optional[bool]:
        if not tenant_id:
            return None
        tenant = self.db.query(TenantDB).filter(TenantDB.id == tenant_id).first()
        return tenant.is_active if tenant else None

    def set_active(self, tenant_id: str, active: bool) -> bool:
        """Set the tenant's active flag. Returns True if the flag changed."""
        changed = self.db.query(TenantDB).filter(
            TenantDB.id == tenant_id,
            TenantDB.is_active != active,
        ).update(
            {TenantDB.is_active: active, TenantDB.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
        return changed > 0


def unique_users(users: Iterable[Optional[UserDB]]) -> List[UserDB]:
    """Drop missing users and repeated ids, keeping first-seen order."""
    seen = set()
    result = []
    for user in users:
        if user is None or user.id in seen:
            continue
        seen.add(user.id)
        result.append(user)
    return result
