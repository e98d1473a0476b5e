"""
Complaint Notifications

One template per recipient class. A template only renders; delivery is the
NotificationGateway's job.

Escalation fanout:
- Admin  -> ComplaintEscalatedAdminNotification  (type complaint_escalated)
- Cook   -> ComplaintEscalatedCookNotification   (type complaint_escalated_cook)
- Client -> ComplaintEscalatedClientNotification (type complaint_escalated_client)

Resolution:
- Client -> ComplaintResolvedNotification (type complaint_resolved)
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from ...models.complaint import Complaint, RESOLUTION_TYPE_LABELS
from ...models.db_models import EscalationReason


CURRENCY = "XAF"


def format_amount(amount: Optional[Decimal]) -> Optional[str]:
    """5000 -> '5,000 XAF'."""
    if amount is None:
        return None
    return f"{Decimal(amount):,.0f} {CURRENCY}"


class ComplaintNotification:
    """Base template. Subclasses set `type` and render title/body/data."""

    type: str = ""

    def __init__(self, complaint: Complaint):
        self.complaint = complaint

    def get_title(self) -> str:
        raise NotImplementedError

    def get_body(self) -> str:
        raise NotImplementedError

    def get_data(self) -> Dict[str, Any]:
        raise NotImplementedError

    def get_action_url(self) -> str:
        raise NotImplementedError

    def _escalation_reason(self) -> str:
        reason = self.complaint.escalation_reason or EscalationReason.AUTO_24H
        return reason.value


class ComplaintEscalatedAdminNotification(ComplaintNotification):
    type = "complaint_escalated"

    def get_title(self) -> str:
        return "Complaint Escalated"

    def get_body(self) -> str:
        return (
            f"A {self.complaint.category_label().lower()} complaint was escalated "
            f"after 24 hours without a response and needs review."
        )

    def get_data(self) -> Dict[str, Any]:
        return {
            "complaint_id": self.complaint.id,
            "order_id": self.complaint.order_id,
            "category": self.complaint.category,
            "tenant_id": self.complaint.tenant_id,
            "type": self.type,
            "escalation_reason": self._escalation_reason(),
        }

    def get_action_url(self) -> str:
        return f"/vault-entry/complaints/{self.complaint.id}"


class ComplaintEscalatedCookNotification(ComplaintNotification):
    type = "complaint_escalated_cook"

    def __init__(self, complaint: Complaint, order_number: Optional[str] = None):
        super().__init__(complaint)
        self.order_number = order_number

    def get_title(self) -> str:
        return "Complaint Escalated to Admin"

    def get_body(self) -> str:
        order_ref = self.order_number or "your order"
        return (
            f"The complaint on order {order_ref} was not addressed within 24 hours "
            f"and has been escalated to the admin team."
        )

    def get_data(self) -> Dict[str, Any]:
        return {
            "complaint_id": self.complaint.id,
            "order_id": self.complaint.order_id,
            "category": self.complaint.category,
            "type": self.type,
            "escalation_reason": self._escalation_reason(),
        }

    def get_action_url(self) -> str:
        return f"/dashboard/complaints/{self.complaint.id}"


class ComplaintEscalatedClientNotification(ComplaintNotification):
    type = "complaint_escalated_client"

    def get_title(self) -> str:
        return "Complaint Escalated"

    def get_body(self) -> str:
        return "Your complaint has been escalated to our support team for review"

    def get_data(self) -> Dict[str, Any]:
        return {
            "complaint_id": self.complaint.id,
            "order_id": self.complaint.order_id,
            "type": self.type,
        }

    def get_action_url(self) -> str:
        return f"/my-orders/{self.complaint.order_id}/complaint/{self.complaint.id}"


class ComplaintResolvedNotification(ComplaintNotification):
    type = "complaint_resolved"

    def get_title(self) -> str:
        return "Complaint Resolved"

    def get_body(self) -> str:
        body = "Our support team has reviewed and resolved your complaint."
        label = RESOLUTION_TYPE_LABELS.get(self.complaint.resolution_type)
        if label:
            body += f" Outcome: {label}."
        refund = format_amount(self.complaint.refund_amount)
        if refund:
            body += f" A refund of {refund} has been issued."
        return body

    def get_data(self) -> Dict[str, Any]:
        data = {
            "complaint_id": self.complaint.id,
            "order_id": self.complaint.order_id,
            "type": self.type,
            "resolution_type": self.complaint.resolution_type.value if self.complaint.resolution_type else None,
        }
        if self.complaint.refund_amount is not None:
            data["refund_amount"] = str(self.complaint.refund_amount)
        return data

    def get_action_url(self) -> str:
        return f"/my-orders/{self.complaint.order_id}/complaint/{self.complaint.id}"
