"""
Complaint Engine - Complaint Aggregate

Explicit lifecycle model for a complaint. The current state is one of five
variants, and each variant only carries the facts valid for it:

    Open | InReview | Escalated{reason, at}
    | Resolved{type, notes, by, at, refund?, suspension?}
    | Dismissed{notes, by, at}

Invalid combinations (a refund on a warning, a suspension on a refund,
'dismiss' recorded as Resolved) raise ValueError at construction.
The ORM row (ComplaintDB) stays the persistence shape; from_row() and
to_columns() convert between the two.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional, Union

from .db_models import (
    ActorType, ComplaintDB, ComplaintStatus, EscalationReason, ResolutionType,
    REFUND_TYPES, TERMINAL_STATUSES,
)


OVERDUE_AFTER_ESCALATION_HOURS = 48


def utcnow() -> datetime:
    """Naive UTC, matching the DateTime columns."""
    return datetime.utcnow()


# =============================================================================
# ACTORS
# =============================================================================

@dataclass(frozen=True)
class SystemActor:
    """The engine itself (scheduled jobs). Has no user record."""
    kind: ClassVar[ActorType] = ActorType.SYSTEM

    @property
    def user_id(self) -> None:
        return None


@dataclass(frozen=True)
class UserActor:
    """A human acting through the admin surface."""
    user_id: str
    kind: ClassVar[ActorType] = ActorType.USER

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("UserActor requires a user_id")


Actor = Union[SystemActor, UserActor]

SYSTEM = SystemActor()


# =============================================================================
# VALUE TYPES
# =============================================================================

@dataclass(frozen=True)
class Refund:
    amount: Decimal

    def __post_init__(self):
        if self.amount is None or Decimal(self.amount) <= 0:
            raise ValueError("Refund amount must be positive")
        object.__setattr__(self, "amount", Decimal(self.amount))


@dataclass(frozen=True)
class Suspension:
    days: int
    ends_at: datetime

    def __post_init__(self):
        if not isinstance(self.days, int) or isinstance(self.days, bool) or self.days < 1:
            raise ValueError("Suspension days must be a positive integer")

    @classmethod
    def starting(cls, at: datetime, days: int) -> "Suspension":
        return cls(days=days, ends_at=at + timedelta(days=days))


@dataclass(frozen=True)
class Escalation:
    reason: EscalationReason
    at: datetime


# =============================================================================
# STATES
# =============================================================================

@dataclass(frozen=True)
class Open:
    status: ClassVar[ComplaintStatus] = ComplaintStatus.OPEN

    def to_columns(self) -> Dict[str, Any]:
        return {"status": self.status}


@dataclass(frozen=True)
class InReview:
    status: ClassVar[ComplaintStatus] = ComplaintStatus.IN_REVIEW

    def to_columns(self) -> Dict[str, Any]:
        return {"status": self.status}


@dataclass(frozen=True)
class Escalated:
    reason: EscalationReason
    at: datetime
    status: ClassVar[ComplaintStatus] = ComplaintStatus.ESCALATED

    def __post_init__(self):
        if self.at is None:
            raise ValueError("Escalated state requires an escalation timestamp")

    def to_columns(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "is_escalated": True,
            "escalation_reason": self.reason,
            "escalated_at": self.at,
        }


@dataclass(frozen=True)
class Resolved:
    type: ResolutionType
    notes: str
    by: Optional[UserActor]  # None once the resolving user is deleted
    at: datetime
    refund: Optional[Refund] = None
    suspension: Optional[Suspension] = None
    status: ClassVar[ComplaintStatus] = ComplaintStatus.RESOLVED

    def __post_init__(self):
        if self.type == ResolutionType.DISMISS:
            raise ValueError("A dismissal is recorded as Dismissed, not Resolved")
        if (self.refund is not None) != (self.type in REFUND_TYPES):
            raise ValueError(f"Refund must be present exactly for refund resolutions (got {self.type.value})")
        if (self.suspension is not None) != (self.type == ResolutionType.SUSPEND):
            raise ValueError(f"Suspension must be present exactly for suspend resolutions (got {self.type.value})")

    def to_columns(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "resolution_type": self.type,
            "resolution_notes": self.notes,
            "refund_amount": self.refund.amount if self.refund else None,
            "suspension_days": self.suspension.days if self.suspension else None,
            "suspension_ends_at": self.suspension.ends_at if self.suspension else None,
            "resolved_by": self.by.user_id if self.by else None,
            "resolved_at": self.at,
        }


@dataclass(frozen=True)
class Dismissed:
    notes: str
    by: Optional[UserActor]
    at: datetime
    status: ClassVar[ComplaintStatus] = ComplaintStatus.DISMISSED

    def to_columns(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "resolution_type": ResolutionType.DISMISS,
            "resolution_notes": self.notes,
            "refund_amount": None,
            "suspension_days": None,
            "suspension_ends_at": None,
            "resolved_by": self.by.user_id if self.by else None,
            "resolved_at": self.at,
        }


ComplaintState = Union[Open, InReview, Escalated, Resolved, Dismissed]


# =============================================================================
# LABELS
# =============================================================================

CATEGORY_LABELS = {
    "food_quality": "Food Quality",
    "late_delivery": "Late Delivery",
    "missing_items": "Missing Items",
    "wrong_order": "Wrong Order",
    "rude_behavior": "Rude Behavior",
    "other": "Other",
}

STATUS_LABELS = {
    ComplaintStatus.OPEN: "Open",
    ComplaintStatus.IN_REVIEW: "In Review",
    ComplaintStatus.ESCALATED: "Escalated",
    ComplaintStatus.RESOLVED: "Resolved",
    ComplaintStatus.DISMISSED: "Dismissed",
}

ESCALATION_REASON_LABELS = {
    EscalationReason.AUTO_24H: "Auto-escalated (24h no response)",
    EscalationReason.MANUAL_CLIENT: "Escalated by client",
    EscalationReason.MANUAL_COOK: "Escalated by cook",
}

RESOLUTION_TYPE_LABELS = {
    ResolutionType.DISMISS: "Dismissed",
    ResolutionType.PARTIAL_REFUND: "Partial Refund",
    ResolutionType.FULL_REFUND: "Full Refund",
    ResolutionType.WARNING: "Warning to Cook",
    ResolutionType.SUSPEND: "Cook Suspended",
}


def _humanize(value: str) -> str:
    return value.replace("_", " ").capitalize()


# =============================================================================
# AGGREGATE
# =============================================================================

@dataclass(frozen=True)
class Complaint:
    """
    Read model of a complaint at one point in its lifecycle.

    Escalation facts outlive the Escalated state: a complaint resolved after
    escalation keeps its Escalation record.
    """
    id: str
    client_id: Optional[str]
    cook_id: Optional[str]
    tenant_id: Optional[str]
    order_id: Optional[str]
    category: str
    created_at: datetime
    state: ComplaintState
    escalation: Optional[Escalation] = None
    submitted_at: Optional[datetime] = None
    description: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.state, Escalated):
            if self.escalation is None or self.escalation != Escalation(self.state.reason, self.state.at):
                raise ValueError("Escalated state must match the complaint's escalation record")
        elif isinstance(self.state, (Open, InReview)) and self.escalation is not None:
            raise ValueError(f"A {self.state.status.value} complaint cannot carry escalation facts")

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    @classmethod
    def from_row(cls, row: ComplaintDB) -> "Complaint":
        status = ComplaintStatus(row.status)

        escalation = None
        if row.is_escalated:
            if row.escalated_at is None or row.escalation_reason is None:
                raise ValueError(f"Complaint {row.id} is flagged escalated without escalation facts")
            escalation = Escalation(EscalationReason(row.escalation_reason), row.escalated_at)

        by = UserActor(row.resolved_by) if row.resolved_by else None

        if status == ComplaintStatus.OPEN:
            state: ComplaintState = Open()
        elif status == ComplaintStatus.IN_REVIEW:
            state = InReview()
        elif status == ComplaintStatus.ESCALATED:
            if escalation is None:
                raise ValueError(f"Complaint {row.id} is escalated without escalation facts")
            state = Escalated(reason=escalation.reason, at=escalation.at)
        elif status == ComplaintStatus.DISMISSED:
            state = Dismissed(notes=row.resolution_notes or "", by=by, at=row.resolved_at)
        else:
            resolution_type = ResolutionType(row.resolution_type)
            state = Resolved(
                type=resolution_type,
                notes=row.resolution_notes or "",
                by=by,
                at=row.resolved_at,
                refund=Refund(row.refund_amount) if row.refund_amount is not None else None,
                suspension=(
                    Suspension(days=row.suspension_days, ends_at=row.suspension_ends_at)
                    if row.suspension_days is not None else None
                ),
            )

        return cls(
            id=row.id,
            client_id=row.client_id,
            cook_id=row.cook_id,
            tenant_id=row.tenant_id,
            order_id=row.order_id,
            category=row.category,
            created_at=row.created_at,
            state=state,
            escalation=escalation,
            submitted_at=row.submitted_at,
            description=row.description,
        )

    # -------------------------------------------------------------------------
    # Derived facts
    # -------------------------------------------------------------------------

    @property
    def status(self) -> ComplaintStatus:
        return self.state.status

    @property
    def is_escalated(self) -> bool:
        return self.escalation is not None

    @property
    def escalation_reason(self) -> Optional[EscalationReason]:
        return self.escalation.reason if self.escalation else None

    @property
    def escalated_at(self) -> Optional[datetime]:
        return self.escalation.at if self.escalation else None

    @property
    def resolution_type(self) -> Optional[ResolutionType]:
        if isinstance(self.state, Dismissed):
            return ResolutionType.DISMISS
        if isinstance(self.state, Resolved):
            return self.state.type
        return None

    @property
    def resolution_notes(self) -> Optional[str]:
        if isinstance(self.state, (Resolved, Dismissed)):
            return self.state.notes
        return None

    @property
    def resolved_by(self) -> Optional[str]:
        if isinstance(self.state, (Resolved, Dismissed)) and self.state.by:
            return self.state.by.user_id
        return None

    @property
    def resolved_at(self) -> Optional[datetime]:
        if isinstance(self.state, (Resolved, Dismissed)):
            return self.state.at
        return None

    @property
    def refund_amount(self) -> Optional[Decimal]:
        if isinstance(self.state, Resolved) and self.state.refund:
            return self.state.refund.amount
        return None

    @property
    def suspension_days(self) -> Optional[int]:
        if isinstance(self.state, Resolved) and self.state.suspension:
            return self.state.suspension.days
        return None

    @property
    def suspension_ends_at(self) -> Optional[datetime]:
        if isinstance(self.state, Resolved) and self.state.suspension:
            return self.state.suspension.ends_at
        return None

    def is_resolved(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_unresolved(self) -> bool:
        """Still waiting on an admin decision."""
        return self.status == ComplaintStatus.ESCALATED

    def is_overdue(self, now: datetime) -> bool:
        """Escalated more than 48 hours ago and still unresolved."""
        return (
            self.escalation is not None
            and self.is_unresolved()
            and now - self.escalation.at > timedelta(hours=OVERDUE_AFTER_ESCALATION_HOURS)
        )

    # -------------------------------------------------------------------------
    # Labels
    # -------------------------------------------------------------------------

    def category_label(self) -> str:
        return CATEGORY_LABELS.get(self.category, _humanize(self.category))

    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    def escalation_reason_label(self) -> str:
        if self.escalation is None:
            return "Unknown"
        return ESCALATION_REASON_LABELS[self.escalation.reason]

    def resolution_type_label(self) -> str:
        if self.resolution_type is None:
            return "Unknown"
        return RESOLUTION_TYPE_LABELS[self.resolution_type]
