"""
Complaint Resolution Engine

AUTHORITY: USER (admin or super-admin)
Applies one of five outcomes to an escalated complaint:

| type           | status    | side effects                                   |
|----------------|-----------|------------------------------------------------|
| dismiss        | dismissed | none                                           |
| partial_refund | resolved  | refund_amount = decision amount                |
| full_refund    | resolved  | refund_amount = order's successful payment     |
| warning        | resolved  | warning_issued record on the cook              |
| suspend        | resolved  | suspension window, tenant deactivated,         |
|                |           | suspended / cook_suspended records             |

Every outcome appends exactly one complaint_resolved record. The precondition
check and the status write happen in one transaction: the row is read
FOR UPDATE and the UPDATE is conditional on the status that was read, so the
second of two concurrent resolutions fails with IllegalStateError.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.complaint import (
    Complaint, ComplaintState, Dismissed, Refund, Resolved, Suspension, UserActor, utcnow,
)
from ...models.db_models import (
    ComplaintDB, ComplaintStatus, ResolutionType, REFUND_TYPES,
)
from .collaborators import (
    ActivityLogAuditSink, AuditEvent, AuditSink, DatabaseNotificationGateway,
    NotificationGateway, PaymentLookup, RecipientDirectory, SqlOrderLookup,
    SqlRecipientDirectory, SqlTenantStore, TenantStore,
)
from .errors import (
    ComplaintNotFoundError, DecisionValidationError, IllegalStateError,
    NotificationDeliveryError,
)
from .notifications import ComplaintResolvedNotification
from .state_machine import ComplaintStateMachine

logger = logging.getLogger(__name__)


# =============================================================================
# DECISION RULES
# =============================================================================

NOTES_MIN_LENGTH = 10
NOTES_MAX_LENGTH = 2000
REFUND_MINIMUM = Decimal("1")
SUSPENSION_MIN_DAYS = 1
SUSPENSION_MAX_DAYS = 365

# Audit events counted as disciplinary history for a cook
WARNING_EVENTS = ("warning_issued", "cook_suspended")


@dataclass(frozen=True)
class ResolutionDecision:
    """An admin's resolution request, before validation against the complaint."""
    resolution_type: ResolutionType
    resolution_notes: str
    refund_amount: Optional[Decimal] = None
    suspension_days: Optional[int] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "resolution_type", ResolutionType(self.resolution_type))
        except ValueError:
            raise DecisionValidationError(
                f"Unknown resolution type: {self.resolution_type}", field="resolution_type"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResolutionDecision":
        """
        Build a decision from a request payload.

        Raises DecisionValidationError for a missing or unknown type, missing
        notes, or a refund amount that is not a finite number.
        """
        raw_type = data.get("resolution_type")
        if not raw_type:
            raise DecisionValidationError("resolution_type is required", field="resolution_type")
        try:
            resolution_type = ResolutionType(raw_type)
        except ValueError:
            raise DecisionValidationError(
                f"Unknown resolution type: {raw_type}", field="resolution_type"
            )

        notes = data.get("resolution_notes")
        if not isinstance(notes, str):
            raise DecisionValidationError("resolution_notes is required", field="resolution_notes")

        refund_amount = data.get("refund_amount")
        if refund_amount is not None:
            try:
                refund_amount = Decimal(str(refund_amount))
            except InvalidOperation:
                raise DecisionValidationError(
                    "refund_amount must be a number", field="refund_amount"
                )
            if not refund_amount.is_finite():
                raise DecisionValidationError(
                    "refund_amount must be a finite number", field="refund_amount"
                )

        return cls(
            resolution_type=resolution_type,
            resolution_notes=notes,
            refund_amount=refund_amount,
            suspension_days=data.get("suspension_days"),
        )

    @property
    def target_status(self) -> ComplaintStatus:
        if self.resolution_type == ResolutionType.DISMISS:
            return ComplaintStatus.DISMISSED
        return ComplaintStatus.RESOLVED


# =============================================================================
# RESOLUTION SERVICE
# =============================================================================

class ComplaintResolutionService:
    """
    Admin resolution of complaints, plus the cook-history reads shown next to
    the resolution form.

    Policy switches:
    - require_escalation: only ESCALATED complaints can be resolved. When off,
      any non-terminal complaint can be resolved directly.
    - block_duplicate_refunds: reject a refund when another complaint on the
      same order already carries one. When off the check stays advisory
      (is_order_already_refunded) and the caller decides.
    """

    def __init__(
        self,
        db_session: Session,
        audit: Optional[AuditSink] = None,
        payments: Optional[PaymentLookup] = None,
        tenants: Optional[TenantStore] = None,
        recipients: Optional[RecipientDirectory] = None,
        notifications: Optional[NotificationGateway] = None,
        clock: Callable[[], datetime] = utcnow,
        require_escalation: bool = True,
        block_duplicate_refunds: bool = False,
    ):
        self.db = db_session
        self.audit = audit or ActivityLogAuditSink(db_session)
        self.payments = payments or SqlOrderLookup(db_session)
        self.tenants = tenants or SqlTenantStore(db_session)
        self.recipients = recipients or SqlRecipientDirectory(db_session)
        self.notifications = notifications or DatabaseNotificationGateway(db_session)
        self.clock = clock
        self.require_escalation = require_escalation
        self.block_duplicate_refunds = block_duplicate_refunds
        self.state_machine = ComplaintStateMachine()

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get_complaint(self, complaint_id: str) -> Complaint:
        row = self.db.query(ComplaintDB).filter(ComplaintDB.id == complaint_id).first()
        if row is None:
            raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
        return Complaint.from_row(row)

    # =========================================================================
    # RESOLVE
    # =========================================================================

    def resolve(
        self,
        complaint: Union[Complaint, str],
        decision: ResolutionDecision,
        actor: UserActor,
    ) -> Complaint:
        """
        Apply a resolution decision.

        Raises:
            ComplaintNotFoundError: the complaint does not exist
            IllegalStateError: already resolved/dismissed, or not escalated
                while require_escalation is on
            DecisionValidationError: the decision is malformed

        Any failure before the commit, typed or not, rolls back the whole
        resolution: status, side effects and audit records.
        """
        complaint_id = complaint.id if isinstance(complaint, Complaint) else complaint
        now = self.clock()

        try:
            row = self.db.query(ComplaintDB).filter(
                ComplaintDB.id == complaint_id
            ).with_for_update().populate_existing().first()
            if row is None:
                raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")

            current = Complaint.from_row(row)
            self._check_precondition(current, decision.target_status)

            payment = self.payments.successful_payment_for(current.order_id)
            payment_amount = payment.amount if payment is not None else None
            self.validate(decision, payment_amount)

            if (
                self.block_duplicate_refunds
                and decision.resolution_type in REFUND_TYPES
                and self.is_order_already_refunded(current)
            ):
                raise DecisionValidationError(
                    f"Order {current.order_id} has already been refunded on another complaint",
                    field="refund_amount",
                )

            state = self._build_state(decision, actor, payment_amount, now)

            values = state.to_columns()
            values["updated_at"] = now
            updated = self.db.query(ComplaintDB).filter(
                ComplaintDB.id == current.id,
                ComplaintDB.status == current.status,
            ).update(values, synchronize_session=False)
            if updated == 0:
                raise IllegalStateError(f"Complaint {current.id} was modified by another request")

            self._apply_side_effects(current, state, actor, now)

            self.audit.append(AuditEvent(
                log_name="complaints",
                event="complaint_resolved",
                subject_type="complaint",
                subject_id=current.id,
                actor=actor,
                properties={
                    "resolution_type": decision.resolution_type.value,
                    "resolution_notes": decision.resolution_notes,
                    "refund_amount": state.refund.amount if isinstance(state, Resolved) and state.refund else None,
                    "suspension_days": state.suspension.days if isinstance(state, Resolved) and state.suspension else None,
                },
                timestamp=now,
            ))

            self.db.commit()

        except (IllegalStateError, DecisionValidationError) as e:
            self.db.rollback()
            logger.warning(f"Resolution of complaint {complaint_id} rejected: {e}")
            raise
        except ComplaintNotFoundError:
            self.db.rollback()
            raise
        except Exception as e:
            # Status write and side effects are discarded together
            self.db.rollback()
            logger.error(f"Resolution of complaint {complaint_id} failed: {e}")
            raise

        resolved = self.get_complaint(complaint_id)
        logger.info(
            f"Complaint {complaint_id} resolved as {decision.resolution_type.value} "
            f"by user {actor.user_id}"
        )

        self._notify_client(resolved)
        return resolved

    def _check_precondition(self, current: Complaint, target: ComplaintStatus) -> None:
        if current.is_resolved():
            raise IllegalStateError(f"Complaint is already {current.status.value}")
        if self.require_escalation:
            self.state_machine.assert_transition(current.status, target)

    def validate(self, decision: ResolutionDecision, payment_amount: Optional[Decimal] = None) -> None:
        """
        Check a decision against the resolution rules.

        payment_amount is the order's successful payment, if any. It caps a
        partial refund and is required for a full refund.
        """
        notes = decision.resolution_notes or ""
        if len(notes) < NOTES_MIN_LENGTH:
            raise DecisionValidationError(
                f"resolution_notes must be at least {NOTES_MIN_LENGTH} characters",
                field="resolution_notes",
            )
        if len(notes) > NOTES_MAX_LENGTH:
            raise DecisionValidationError(
                f"resolution_notes may not exceed {NOTES_MAX_LENGTH} characters",
                field="resolution_notes",
            )

        resolution_type = decision.resolution_type

        if resolution_type == ResolutionType.PARTIAL_REFUND:
            amount = decision.refund_amount
            if amount is None:
                raise DecisionValidationError(
                    "refund_amount is required for a partial refund", field="refund_amount"
                )
            if isinstance(amount, Decimal) and not amount.is_finite():
                raise DecisionValidationError(
                    "refund_amount must be a finite number", field="refund_amount"
                )
            if amount < REFUND_MINIMUM:
                raise DecisionValidationError(
                    f"refund_amount must be at least {REFUND_MINIMUM}", field="refund_amount"
                )
            if payment_amount is not None and amount > payment_amount:
                raise DecisionValidationError(
                    f"refund_amount may not exceed the order payment of {payment_amount}",
                    field="refund_amount",
                )

        elif resolution_type == ResolutionType.FULL_REFUND:
            if payment_amount is None or payment_amount <= 0:
                raise DecisionValidationError(
                    "Order has no successful payment to refund", field="refund_amount"
                )

        elif resolution_type == ResolutionType.SUSPEND:
            days = decision.suspension_days
            if days is None:
                raise DecisionValidationError(
                    "suspension_days is required for a suspension", field="suspension_days"
                )
            if not isinstance(days, int) or isinstance(days, bool):
                raise DecisionValidationError(
                    "suspension_days must be an integer", field="suspension_days"
                )
            if not SUSPENSION_MIN_DAYS <= days <= SUSPENSION_MAX_DAYS:
                raise DecisionValidationError(
                    f"suspension_days must be between {SUSPENSION_MIN_DAYS} and {SUSPENSION_MAX_DAYS}",
                    field="suspension_days",
                )

    def _build_state(
        self,
        decision: ResolutionDecision,
        actor: UserActor,
        payment_amount: Optional[Decimal],
        now: datetime,
    ) -> ComplaintState:
        resolution_type = decision.resolution_type

        if resolution_type == ResolutionType.DISMISS:
            return Dismissed(notes=decision.resolution_notes, by=actor, at=now)

        refund = None
        if resolution_type == ResolutionType.PARTIAL_REFUND:
            refund = Refund(decision.refund_amount)
        elif resolution_type == ResolutionType.FULL_REFUND:
            # Never taken from the payload
            refund = Refund(payment_amount)

        suspension = None
        if resolution_type == ResolutionType.SUSPEND:
            suspension = Suspension.starting(now, decision.suspension_days)

        return Resolved(
            type=resolution_type,
            notes=decision.resolution_notes,
            by=actor,
            at=now,
            refund=refund,
            suspension=suspension,
        )

    def _apply_side_effects(
        self,
        complaint: Complaint,
        state: ComplaintState,
        actor: UserActor,
        now: datetime,
    ) -> None:
        if not isinstance(state, Resolved):
            return

        if state.type == ResolutionType.WARNING:
            if complaint.cook_id is None:
                logger.warning(f"Complaint {complaint.id} has no cook; warning not recorded")
                return
            self.audit.append(AuditEvent(
                log_name="complaints",
                event="warning_issued",
                subject_type="user",
                subject_id=complaint.cook_id,
                actor=actor,
                properties={
                    "complaint_id": complaint.id,
                    "type": "warning",
                    "note": state.notes,
                },
                timestamp=now,
            ))

        elif state.type == ResolutionType.SUSPEND:
            self._suspend_cook(complaint, state, actor, now)

    def _suspend_cook(
        self,
        complaint: Complaint,
        state: Resolved,
        actor: UserActor,
        now: datetime,
    ) -> None:
        if complaint.tenant_id is None:
            logger.warning(f"Complaint {complaint.id} has no tenant; nothing to deactivate")
        elif self.tenants.set_active(complaint.tenant_id, False):
            self.audit.append(AuditEvent(
                log_name="tenants",
                event="suspended",
                subject_type="tenant",
                subject_id=complaint.tenant_id,
                actor=actor,
                properties={
                    "reason": "complaint_suspension",
                    "complaint_id": complaint.id,
                    "suspension_days": state.suspension.days,
                    "suspension_ends_at": state.suspension.ends_at,
                },
                timestamp=now,
            ))
            logger.info(f"Tenant {complaint.tenant_id} deactivated until {state.suspension.ends_at.isoformat()}")

        if complaint.cook_id is None:
            logger.warning(f"Complaint {complaint.id} has no cook; suspension not recorded on cook")
            return
        self.audit.append(AuditEvent(
            log_name="complaints",
            event="cook_suspended",
            subject_type="user",
            subject_id=complaint.cook_id,
            actor=actor,
            properties={
                "complaint_id": complaint.id,
                "tenant_id": complaint.tenant_id,
                "suspension_days": state.suspension.days,
                "suspension_ends_at": state.suspension.ends_at,
            },
            timestamp=now,
        ))

    def _notify_client(self, complaint: Complaint) -> None:
        """Post-commit. A failed delivery is logged; the resolution stands."""
        try:
            client = self.recipients.get_user(complaint.client_id)
            if client is None:
                logger.warning(f"Client {complaint.client_id} not found for resolved complaint {complaint.id}")
                return
            self.notifications.send(client, ComplaintResolvedNotification(complaint))
            self.db.commit()
        except (NotificationDeliveryError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.warning(f"Resolution notification for complaint {complaint.id} failed: {e}")

    # =========================================================================
    # COOK HISTORY (READ-ONLY)
    # =========================================================================

    def count_warnings(self, cook_id: str) -> int:
        """Warnings and suspensions on record for the cook."""
        return self.audit.count("complaints", "user", cook_id, WARNING_EVENTS)

    def count_complaints(self, cook_id: str) -> int:
        return self.db.query(ComplaintDB).filter(ComplaintDB.cook_id == cook_id).count()

    def list_prior_suspensions(self, cook_id: str) -> List[Complaint]:
        """Complaints against the cook resolved with a suspension, newest first."""
        rows = self.db.query(ComplaintDB).filter(
            ComplaintDB.cook_id == cook_id,
            ComplaintDB.resolution_type == ResolutionType.SUSPEND,
        ).order_by(ComplaintDB.resolved_at.desc()).all()
        return [Complaint.from_row(row) for row in rows]

    def is_order_already_refunded(self, complaint: Complaint) -> bool:
        """True if another complaint on the same order already carries a refund."""
        if complaint.order_id is None:
            return False
        return self.db.query(ComplaintDB).filter(
            ComplaintDB.order_id == complaint.order_id,
            ComplaintDB.id != complaint.id,
            ComplaintDB.refund_amount.isnot(None),
        ).first() is not None

    def cook_history(self, complaint: Complaint) -> Dict[str, Any]:
        """Everything the admin sees about the cook next to the resolution form."""
        cook_id = complaint.cook_id
        if cook_id is None:
            return {
                "cook_id": None,
                "warning_count": 0,
                "complaint_count": 0,
                "prior_suspensions": [],
                "order_already_refunded": self.is_order_already_refunded(complaint),
            }
        return {
            "cook_id": cook_id,
            "warning_count": self.count_warnings(cook_id),
            "complaint_count": self.count_complaints(cook_id),
            "prior_suspensions": self.list_prior_suspensions(cook_id),
            "order_already_refunded": self.is_order_already_refunded(complaint),
        }
