"""Complaint Engine - Data Models"""
from .db_models import (
    # Enums
    ComplaintStatus, ResolutionType, EscalationReason, ComplaintCategory, ActorType, UserRole,
    # Tables
    UserDB, TenantDB, OrderDB, PaymentTransactionDB, ComplaintDB, ActivityLogDB, NotificationDB,
)
from .complaint import (
    # Actors
    Actor, SystemActor, UserActor, SYSTEM,
    # States
    ComplaintState, Open, InReview, Escalated, Resolved, Dismissed,
    Refund, Suspension, Escalation,
    # Aggregate
    Complaint,
)

__all__ = [
    "ComplaintStatus", "ResolutionType", "EscalationReason", "ComplaintCategory", "ActorType", "UserRole",
    "UserDB", "TenantDB", "OrderDB", "PaymentTransactionDB", "ComplaintDB", "ActivityLogDB", "NotificationDB",
    "Actor", "SystemActor", "UserActor", "SYSTEM",
    "ComplaintState", "Open", "InReview", "Escalated", "Resolved", "Dismissed",
    "Refund", "Suspension", "Escalation",
    "Complaint",
]
