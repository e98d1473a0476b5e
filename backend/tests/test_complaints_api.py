"""
Tests for the admin complaint routes and the internal scheduler route.
"""
import pytest
from datetime import timedelta

from fastapi.testclient import TestClient

from complaint_engine.auth import issue_access_token
from complaint_engine.database import get_db
from complaint_engine.main import app
from complaint_engine.models.db_models import ComplaintStatus, EscalationReason, UserRole
from complaint_engine.routers.complaints import get_resolution_service
from complaint_engine.routers.scheduler import INTERNAL_API_KEY, get_escalation_service
from complaint_engine.services.complaints import (
    ComplaintEscalationService, ComplaintResolutionService,
)

from conftest import NOW


NOTES = "Client sent photos of the spoiled meal."


@pytest.fixture
def api(db, clock):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_resolution_service] = lambda: ComplaintResolutionService(db, clock=clock)
    app.dependency_overrides[get_escalation_service] = lambda: ComplaintEscalationService(db, clock=clock)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(user):
    return {"Authorization": f"Bearer {issue_access_token(user)}"}


@pytest.fixture
def escalated(marketplace, make_complaint):
    return make_complaint(
        marketplace.order,
        status=ComplaintStatus.ESCALATED,
        age=timedelta(hours=30),
        is_escalated=True,
        escalation_reason=EscalationReason.AUTO_24H,
        escalated_at=NOW - timedelta(hours=6),
    )


# =============================================================================
# TEST: RESOLVE
# =============================================================================

class TestResolveEndpoint:

    def test_partial_refund(self, api, marketplace, escalated):
        response = api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_type": "partial_refund", "resolution_notes": NOTES, "refund_amount": 3000},
            headers=_auth(marketplace.admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "resolved"
        assert body["resolution_type"] == "partial_refund"
        assert body["resolution_label"] == "Partial Refund"
        assert body["refund_amount"] == 3000
        assert body["resolved_by"] == marketplace.admin.id
        assert body["escalation_reason"] == "auto_24h"

    def test_super_admin_allowed(self, api, marketplace, make_user, escalated):
        super_admin = make_user(UserRole.SUPER_ADMIN)

        response = api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_type": "dismiss", "resolution_notes": NOTES},
            headers=_auth(super_admin),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "dismissed"

    def test_cook_forbidden(self, api, marketplace, escalated):
        response = api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_type": "dismiss", "resolution_notes": NOTES},
            headers=_auth(marketplace.cook),
        )

        assert response.status_code == 403

    def test_demoted_admin_token_forbidden(self, api, db, marketplace, escalated):
        headers = _auth(marketplace.admin)
        marketplace.admin.role = UserRole.CLIENT
        db.commit()

        response = api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_type": "dismiss", "resolution_notes": NOTES},
            headers=headers,
        )

        assert response.status_code == 403

    def test_missing_token(self, api, escalated):
        response = api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_type": "dismiss", "resolution_notes": NOTES},
        )

        assert response.status_code in (401, 403)

    def test_unknown_complaint(self, api, marketplace):
        response = api.post(
            "/admin/complaints/does-not-exist/resolve",
            json={"resolution_type": "dismiss", "resolution_notes": NOTES},
            headers=_auth(marketplace.admin),
        )

        assert response.status_code == 404

    def test_already_resolved_conflict(self, api, marketplace, escalated):
        payload = {"resolution_type": "warning", "resolution_notes": NOTES}
        first = api.post(f"/admin/complaints/{escalated.id}/resolve", json=payload, headers=_auth(marketplace.admin))
        second = api.post(f"/admin/complaints/{escalated.id}/resolve", json=payload, headers=_auth(marketplace.admin))

        assert first.status_code == 200
        assert second.status_code == 409
        assert "already resolved" in second.json()["detail"]

    def test_validation_error(self, api, marketplace, escalated):
        response = api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_type": "suspend", "resolution_notes": NOTES, "suspension_days": 400},
            headers=_auth(marketplace.admin),
        )

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "suspension_days"

    def test_missing_resolution_type(self, api, marketplace, escalated):
        response = api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_notes": NOTES},
            headers=_auth(marketplace.admin),
        )

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "resolution_type"


# =============================================================================
# TEST: COOK HISTORY
# =============================================================================

class TestCookHistoryEndpoint:

    def test_history_after_suspension(self, api, marketplace, escalated, make_complaint):
        other = make_complaint(
            marketplace.order,
            status=ComplaintStatus.ESCALATED,
            is_escalated=True,
            escalation_reason=EscalationReason.AUTO_24H,
            escalated_at=NOW - timedelta(hours=3),
        )
        api.post(
            f"/admin/complaints/{escalated.id}/resolve",
            json={"resolution_type": "suspend", "resolution_notes": NOTES, "suspension_days": 7},
            headers=_auth(marketplace.admin),
        )

        response = api.get(f"/admin/complaints/{other.id}/cook-history", headers=_auth(marketplace.admin))

        assert response.status_code == 200
        body = response.json()
        assert body["cook_id"] == marketplace.cook.id
        assert body["warning_count"] == 1
        assert body["complaint_count"] == 2
        assert body["order_already_refunded"] is False
        assert len(body["prior_suspensions"]) == 1
        assert body["prior_suspensions"][0]["complaint_id"] == escalated.id
        assert body["prior_suspensions"][0]["suspension_days"] == 7

    def test_unknown_complaint(self, api, marketplace):
        response = api.get("/admin/complaints/nope/cook-history", headers=_auth(marketplace.admin))

        assert response.status_code == 404


# =============================================================================
# TEST: INTERNAL SCHEDULER
# =============================================================================

class TestSchedulerEndpoint:

    def test_runs_batch(self, api, marketplace, make_complaint):
        make_complaint(marketplace.order, age=timedelta(hours=26))

        response = api.post(
            "/internal/escalate-overdue-complaints",
            headers={"X-Internal-Key": INTERNAL_API_KEY},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["task"] == "escalate_overdue_complaints"
        assert body["escalated"] == 1
        assert body["failed"] == 0
        assert body["errors"] == []

    def test_wrong_key(self, api):
        response = api.post(
            "/internal/escalate-overdue-complaints",
            headers={"X-Internal-Key": "guess"},
        )

        assert response.status_code == 403

    def test_missing_key(self, api):
        response = api.post("/internal/escalate-overdue-complaints")

        assert response.status_code == 422


def test_health(api):
    response = api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
