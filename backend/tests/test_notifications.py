"""
Tests for complaint notification templates.
"""
from datetime import datetime, timedelta
from decimal import Decimal

from complaint_engine.models.complaint import (
    Complaint, Escalated, Escalation, Open, Refund, Resolved, UserActor,
)
from complaint_engine.models.db_models import EscalationReason, ResolutionType
from complaint_engine.services.complaints.notifications import (
    ComplaintEscalatedAdminNotification,
    ComplaintEscalatedClientNotification,
    ComplaintEscalatedCookNotification,
    ComplaintResolvedNotification,
    format_amount,
)


AT = datetime(2026, 3, 10, 12, 0, 0)


def _escalated(category="missing_items"):
    escalation = Escalation(EscalationReason.AUTO_24H, AT)
    return Complaint(
        id="c-42",
        client_id="client-1",
        cook_id="cook-1",
        tenant_id="tenant-9",
        order_id="order-7",
        category=category,
        created_at=AT - timedelta(hours=25),
        state=Escalated(reason=escalation.reason, at=escalation.at),
        escalation=escalation,
    )


class TestEscalationNotifications:

    def test_admin_payload(self):
        notification = ComplaintEscalatedAdminNotification(_escalated())
        assert notification.get_title() == "Complaint Escalated"
        assert notification.get_data() == {
            "complaint_id": "c-42",
            "order_id": "order-7",
            "category": "missing_items",
            "tenant_id": "tenant-9",
            "type": "complaint_escalated",
            "escalation_reason": "auto_24h",
        }
        assert notification.get_action_url() == "/vault-entry/complaints/c-42"

    def test_cook_payload_names_order_and_sla(self):
        notification = ComplaintEscalatedCookNotification(_escalated(), order_number="ORD-260001")
        body = notification.get_body()
        assert "ORD-260001" in body
        assert "24 hours" in body
        data = notification.get_data()
        assert data["type"] == "complaint_escalated_cook"
        assert data["escalation_reason"] == "auto_24h"
        assert "tenant_id" not in data
        assert notification.get_action_url() == "/dashboard/complaints/c-42"

    def test_client_body_is_fixed(self):
        bodies = {
            ComplaintEscalatedClientNotification(_escalated(category)).get_body()
            for category in ("food_quality", "late_delivery", "rude_behavior")
        }
        assert bodies == {"Your complaint has been escalated to our support team for review"}

    def test_client_payload(self):
        notification = ComplaintEscalatedClientNotification(_escalated())
        assert notification.get_data() == {
            "complaint_id": "c-42",
            "order_id": "order-7",
            "type": "complaint_escalated_client",
        }
        assert notification.get_action_url() == "/my-orders/order-7/complaint/c-42"


class TestResolvedNotification:

    def _refunded(self):
        return Complaint(
            id="c-42",
            client_id="client-1",
            cook_id="cook-1",
            tenant_id="tenant-9",
            order_id="order-7",
            category="food_quality",
            created_at=AT - timedelta(hours=30),
            state=Resolved(
                type=ResolutionType.FULL_REFUND,
                notes="Order arrived spoiled.",
                by=UserActor("admin-1"),
                at=AT,
                refund=Refund(Decimal("5000")),
            ),
            escalation=Escalation(EscalationReason.AUTO_24H, AT - timedelta(hours=6)),
        )

    def test_refund_in_body_and_data(self):
        notification = ComplaintResolvedNotification(self._refunded())
        assert "5,000 XAF" in notification.get_body()
        assert "Full Refund" in notification.get_body()
        data = notification.get_data()
        assert data["type"] == "complaint_resolved"
        assert data["resolution_type"] == "full_refund"
        assert data["refund_amount"] == "5000"

    def test_no_refund_amount_without_refund(self):
        complaint = Complaint(
            id="c-1", client_id="client-1", cook_id="cook-1", tenant_id=None, order_id="order-1",
            category="other", created_at=AT, state=Open(),
        )
        assert "refund_amount" not in ComplaintResolvedNotification(complaint).get_data()


def test_format_amount():
    assert format_amount(Decimal("5000")) == "5,000 XAF"
    assert format_amount(Decimal("12500.00")) == "12,500 XAF"
    assert format_amount(None) is None
