#!/usr/bin/env python3
"""
Complaint Escalation Batch
Escalates every complaint left OPEN for 24 hours or more.

Usage:
    python -m scripts.escalate_overdue_complaints

Meant for cron. Exits 0 whenever the batch ran, even if individual
complaints failed; failures are logged and retried on the next run.
"""
import logging
import os
import sys

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from complaint_engine.database import SessionLocal
from complaint_engine.services.complaints import ComplaintEscalationService

logger = logging.getLogger("scripts.escalate_overdue_complaints")


def run_escalation() -> dict:
    """Run one escalation batch in its own session."""
    db: Session = SessionLocal()
    try:
        return ComplaintEscalationService(db).process_overdue_complaints()
    finally:
        db.close()


def main():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    result = run_escalation()

    logger.info(f"Escalated {result['escalated']} complaint(s), {result['failed']} failed")
    for error in result["errors"]:
        logger.error(f"Complaint {error['complaint_id']}: {error['message']}")

    sys.exit(0)


if __name__ == "__main__":
    main()
