"""
Complaint Admin API Routes

Resolution of escalated complaints and the cook history shown beside the
resolution form. Admin and super-admin only.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..models.complaint import Complaint, UserActor
from ..models.db_models import UserDB
from ..services.complaints import (
    ComplaintNotFoundError,
    ComplaintResolutionService,
    DecisionValidationError,
    IllegalStateError,
    ResolutionDecision,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/complaints", tags=["complaints"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class ResolveComplaintRequest(BaseModel):
    """Admin decision for an escalated complaint."""
    resolution_type: Optional[str] = Field(None, description="dismiss, partial_refund, full_refund, warning, suspend")
    resolution_notes: Optional[str] = Field(None, description="10 to 2000 characters")
    refund_amount: Optional[Decimal] = Field(None, description="Required for partial_refund; ignored for full_refund")
    suspension_days: Optional[int] = Field(None, description="Required for suspend (1-365)")


class ComplaintResponse(BaseModel):
    id: str
    order_id: Optional[str] = None
    client_id: Optional[str] = None
    cook_id: Optional[str] = None
    tenant_id: Optional[str] = None
    category: str
    category_label: str
    status: str
    status_label: str
    is_escalated: bool
    escalation_reason: Optional[str] = None
    escalated_at: Optional[str] = None
    resolution_type: Optional[str] = None
    resolution_label: Optional[str] = None
    resolution_notes: Optional[str] = None
    refund_amount: Optional[float] = None
    suspension_days: Optional[int] = None
    suspension_ends_at: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[str] = None
    created_at: str


class PriorSuspension(BaseModel):
    complaint_id: str
    suspension_days: Optional[int] = None
    resolved_at: Optional[str] = None
    suspension_ends_at: Optional[str] = None


class CookHistoryResponse(BaseModel):
    """Disciplinary context for the complaint's cook."""
    cook_id: Optional[str] = None
    warning_count: int
    complaint_count: int
    prior_suspensions: List[PriorSuspension]
    order_already_refunded: bool


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _complaint_response(complaint: Complaint) -> ComplaintResponse:
    resolution_type = complaint.resolution_type
    return ComplaintResponse(
        id=complaint.id,
        order_id=complaint.order_id,
        client_id=complaint.client_id,
        cook_id=complaint.cook_id,
        tenant_id=complaint.tenant_id,
        category=complaint.category,
        category_label=complaint.category_label(),
        status=complaint.status.value,
        status_label=complaint.status_label(),
        is_escalated=complaint.is_escalated,
        escalation_reason=complaint.escalation_reason.value if complaint.escalation_reason else None,
        escalated_at=_iso(complaint.escalated_at),
        resolution_type=resolution_type.value if resolution_type else None,
        resolution_label=complaint.resolution_type_label() if resolution_type else None,
        resolution_notes=complaint.resolution_notes,
        refund_amount=float(complaint.refund_amount) if complaint.refund_amount is not None else None,
        suspension_days=complaint.suspension_days,
        suspension_ends_at=_iso(complaint.suspension_ends_at),
        resolved_by=complaint.resolved_by,
        resolved_at=_iso(complaint.resolved_at),
        created_at=complaint.created_at.isoformat(),
    )


def get_resolution_service(db: Session = Depends(get_db)) -> ComplaintResolutionService:
    return ComplaintResolutionService(db)


# =============================================================================
# RESOLUTION ENDPOINTS
# =============================================================================

@router.post("/{complaint_id}/resolve", response_model=ComplaintResponse)
async def resolve_complaint(
    complaint_id: str,
    request: ResolveComplaintRequest,
    admin: UserDB = Depends(require_admin),
    service: ComplaintResolutionService = Depends(get_resolution_service),
):
    """
    Resolve an escalated complaint.

    404 if the complaint does not exist, 409 if it is already resolved or
    not escalated, 422 if the decision is malformed.
    """
    try:
        decision = ResolutionDecision.from_dict(request.model_dump())
        complaint = service.resolve(complaint_id, decision, UserActor(admin.id))
    except ComplaintNotFoundError:
        raise HTTPException(status_code=404, detail="Complaint not found")
    except IllegalStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except DecisionValidationError as e:
        raise HTTPException(status_code=422, detail={"field": e.field, "message": e.message})

    return _complaint_response(complaint)


@router.get("/{complaint_id}/cook-history", response_model=CookHistoryResponse)
async def get_cook_history(
    complaint_id: str,
    admin: UserDB = Depends(require_admin),
    service: ComplaintResolutionService = Depends(get_resolution_service),
):
    """Warning count, complaint count and prior suspensions for the complaint's cook."""
    try:
        complaint = service.get_complaint(complaint_id)
    except ComplaintNotFoundError:
        raise HTTPException(status_code=404, detail="Complaint not found")

    history = service.cook_history(complaint)

    return CookHistoryResponse(
        cook_id=history["cook_id"],
        warning_count=history["warning_count"],
        complaint_count=history["complaint_count"],
        prior_suspensions=[
            PriorSuspension(
                complaint_id=prior.id,
                suspension_days=prior.suspension_days,
                resolved_at=_iso(prior.resolved_at),
                suspension_ends_at=_iso(prior.suspension_ends_at),
            )
            for prior in history["prior_suspensions"]
        ],
        order_already_refunded=history["order_already_refunded"],
    )
