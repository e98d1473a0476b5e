"""
Scheduler API Routes

Internal endpoints for system-automatic tasks.
Triggered by an external scheduler in deployments without cron access.
"""
import os

from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.complaints import ComplaintEscalationService


router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "scheduler-internal-key-change-in-production")


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


def get_escalation_service(db: Session = Depends(get_db)) -> ComplaintEscalationService:
    return ComplaintEscalationService(db)


# =============================================================================
# SCHEDULER ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/escalate-overdue-complaints", response_model=dict)
async def escalate_overdue_complaints(
    service: ComplaintEscalationService = Depends(get_escalation_service),
    _: bool = Depends(verify_internal_key),
):
    """
    Run the 24h complaint escalation batch.

    System-automatic - no user confirmation required.
    Per-complaint failures are reported in the result, never as an error status.
    """
    result = service.process_overdue_complaints()

    return {
        "task": "escalate_overdue_complaints",
        **result,
    }
