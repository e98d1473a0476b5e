"""
Tests for the cron entry point.
"""
import pytest
from datetime import datetime, timedelta

from sqlalchemy.orm import sessionmaker

from complaint_engine.models.db_models import ComplaintDB, ComplaintStatus
from complaint_engine.services.complaints import NotificationDeliveryError
from complaint_engine.services.complaints.collaborators import DatabaseNotificationGateway

import scripts.escalate_overdue_complaints as batch


@pytest.fixture
def script_sessions(engine, monkeypatch):
    monkeypatch.setattr(batch, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))


def test_exits_zero_with_nothing_to_do(script_sessions):
    with pytest.raises(SystemExit) as exc:
        batch.main()

    assert exc.value.code == 0


def test_exits_zero_after_escalating(db, script_sessions, marketplace, make_complaint):
    # The script runs on the wall clock
    complaint = make_complaint(marketplace.order)
    complaint.created_at = datetime.utcnow() - timedelta(hours=25)
    db.commit()

    with pytest.raises(SystemExit) as exc:
        batch.main()

    assert exc.value.code == 0
    db.expire_all()
    assert db.query(ComplaintDB).filter(ComplaintDB.id == complaint.id).one().status == ComplaintStatus.ESCALATED


def test_exits_zero_when_items_fail(db, script_sessions, marketplace, make_complaint, monkeypatch):
    complaint = make_complaint(marketplace.order)
    complaint.created_at = datetime.utcnow() - timedelta(hours=25)
    db.commit()

    def refuse(self, recipient, notification):
        raise NotificationDeliveryError("gateway offline")

    monkeypatch.setattr(DatabaseNotificationGateway, "send", refuse)

    with pytest.raises(SystemExit) as exc:
        batch.main()

    assert exc.value.code == 0
