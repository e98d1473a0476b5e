"""
Complaint Escalation Scheduler

AUTHORITY: SYSTEM
Promotes complaints left OPEN past the 24-hour SLA window to ESCALATED and
notifies admins, the client and the cook. Runs from cron via the batch entry
point; no human causer is recorded.

Per complaint the run has two units of work:
1. Escalation: conditional UPDATE guarded by the selection predicate, plus
   the complaint_auto_escalated audit record. Committed on its own.
2. Fanout: one notification per recipient. Committed after step 1.

A failure in step 1 rolls back and leaves the complaint untouched (it stays
eligible for the next run). A failure in step 2 keeps the committed
escalation; the item is reported as failed and is not re-notified.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ...models.complaint import Complaint, Escalated, SYSTEM, utcnow
from ...models.db_models import ComplaintDB, ComplaintStatus, EscalationReason
from .collaborators import (
    ActivityLogAuditSink, AuditEvent, AuditSink, DatabaseNotificationGateway,
    NotificationGateway, OrderLookup, RecipientDirectory, SqlOrderLookup,
    SqlRecipientDirectory, unique_users,
)
from .notifications import (
    ComplaintEscalatedAdminNotification,
    ComplaintEscalatedClientNotification,
    ComplaintEscalatedCookNotification,
)
from .state_machine import ComplaintStateMachine

logger = logging.getLogger(__name__)


# =============================================================================
# ESCALATION CONFIGURATION
# =============================================================================

ESCALATION_SLA_HOURS = 24  # Inclusive: a complaint exactly 24h old is eligible


class ComplaintEscalationService:
    """
    Scheduled auto-escalation of overdue complaints.

    AUTHORITY: SYSTEM - runs without user confirmation.
    Safe to re-run: escalated complaints no longer match the selection
    predicate, and the write itself is conditional on that predicate, so an
    overlapping run becomes a no-op for rows it lost.
    """

    def __init__(
        self,
        db_session: Session,
        audit: Optional[AuditSink] = None,
        notifications: Optional[NotificationGateway] = None,
        recipients: Optional[RecipientDirectory] = None,
        orders: Optional[OrderLookup] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db_session
        self.audit = audit or ActivityLogAuditSink(db_session)
        self.notifications = notifications or DatabaseNotificationGateway(db_session)
        self.recipients = recipients or SqlRecipientDirectory(db_session)
        self.orders = orders or SqlOrderLookup(db_session)
        self.clock = clock
        self.state_machine = ComplaintStateMachine()

    # =========================================================================
    # SELECTION
    # =========================================================================

    def _overdue_predicate(self, now: datetime) -> List[Any]:
        cutoff = now - timedelta(hours=ESCALATION_SLA_HOURS)
        return [
            ComplaintDB.status == ComplaintStatus.OPEN,
            ComplaintDB.is_escalated.is_(False),
            ComplaintDB.created_at <= cutoff,
        ]

    def get_overdue_complaints(self, now: Optional[datetime] = None) -> List[ComplaintDB]:
        """OPEN, never escalated, and at least 24 hours old."""
        now = now or self.clock()
        return self.db.query(ComplaintDB).filter(
            *self._overdue_predicate(now)
        ).order_by(ComplaintDB.created_at.asc()).all()

    # =========================================================================
    # BATCH
    # =========================================================================

    def process_overdue_complaints(self) -> Dict[str, Any]:
        """
        Escalate every overdue complaint.

        Returns {"escalated": int, "failed": int, "errors": [{"complaint_id", "message"}], "run_date"}.
        Never raises for a single complaint's failure.
        """
        now = self.clock()
        escalated = 0
        errors: List[Dict[str, str]] = []

        # Capture ids up front: commits below expire the loaded rows
        complaint_ids = [row.id for row in self.get_overdue_complaints(now)]
        logger.info(f"Escalation run started: {len(complaint_ids)} overdue complaint(s)")

        for complaint_id in complaint_ids:
            try:
                complaint = self.escalate(complaint_id, now)
            except Exception as e:
                self.db.rollback()
                logger.exception(f"Failed to escalate complaint {complaint_id}")
                errors.append({"complaint_id": complaint_id, "message": str(e)})
                continue

            if complaint is None:
                continue

            try:
                self.notify_escalation(complaint)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.exception(f"Complaint {complaint_id} escalated but notification fanout failed")
                errors.append({"complaint_id": complaint_id, "message": str(e)})
                continue

            escalated += 1

        logger.info(f"Escalation run finished: escalated={escalated} failed={len(errors)}")

        return {
            "run_date": now.isoformat(),
            "escalated": escalated,
            "failed": len(errors),
            "errors": errors,
        }

    # =========================================================================
    # SINGLE COMPLAINT
    # =========================================================================

    def escalate(self, complaint_id: str, now: Optional[datetime] = None) -> Optional[Complaint]:
        """
        Escalate one complaint if it still matches the overdue predicate.

        Commits the state change and its audit record together.
        Returns None when another writer already moved the row.
        """
        now = now or self.clock()
        self.state_machine.assert_transition(ComplaintStatus.OPEN, ComplaintStatus.ESCALATED)

        state = Escalated(reason=EscalationReason.AUTO_24H, at=now)
        values = state.to_columns()
        values["updated_at"] = now

        updated = self.db.query(ComplaintDB).filter(
            ComplaintDB.id == complaint_id,
            *self._overdue_predicate(now),
        ).update(values, synchronize_session=False)

        if updated == 0:
            self.db.rollback()
            logger.debug(f"Complaint {complaint_id} no longer eligible, skipping")
            return None

        row = self.db.query(ComplaintDB).populate_existing().filter(
            ComplaintDB.id == complaint_id
        ).one()
        complaint = Complaint.from_row(row)

        self.audit.append(AuditEvent(
            log_name="complaints",
            event="complaint_auto_escalated",
            subject_type="complaint",
            subject_id=complaint.id,
            actor=SYSTEM,
            properties={
                "escalation_reason": EscalationReason.AUTO_24H.value,
                "order_id": complaint.order_id,
                "tenant_id": complaint.tenant_id,
            },
            timestamp=now,
        ))

        self.db.commit()
        logger.info(f"Complaint {complaint_id} auto-escalated (order={complaint.order_id}, tenant={complaint.tenant_id})")
        return complaint

    def notify_escalation(self, complaint: Complaint) -> int:
        """
        Fan out one notification per recipient.

        Zero admins is not an error; client and cook are still notified.
        Returns the number of notifications sent.
        """
        sent = 0

        admins = unique_users(self.recipients.admins_and_super_admins())
        if not admins:
            logger.info(f"No admin recipients for escalated complaint {complaint.id}")
        for admin in admins:
            self.notifications.send(admin, ComplaintEscalatedAdminNotification(complaint))
            sent += 1

        client = self.recipients.get_user(complaint.client_id)
        if client is not None:
            self.notifications.send(client, ComplaintEscalatedClientNotification(complaint))
            sent += 1
        else:
            logger.warning(f"Client {complaint.client_id} not found for complaint {complaint.id}")

        cook = self.recipients.get_user(complaint.cook_id)
        if cook is not None:
            order_number = self.orders.order_number_for(complaint.order_id)
            self.notifications.send(cook, ComplaintEscalatedCookNotification(complaint, order_number))
            sent += 1
        else:
            logger.warning(f"Cook {complaint.cook_id} not found for complaint {complaint.id}")

        return sent
