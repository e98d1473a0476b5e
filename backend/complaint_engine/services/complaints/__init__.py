"""
Complaint Lifecycle Services

Open → Escalated → Resolved / Dismissed

- ComplaintEscalationService: 24h SLA auto-escalation batch (SYSTEM)
- ComplaintResolutionService: admin outcomes and cook-history reads (USER)
- ComplaintStateMachine: transition table shared by both
"""

from .state_machine import ComplaintStateMachine, STATE_CONFIG
from .escalation import ComplaintEscalationService, ESCALATION_SLA_HOURS
from .resolution import ComplaintResolutionService, ResolutionDecision
from .errors import (
    ComplaintEngineError,
    DecisionValidationError,
    IllegalStateError,
    ComplaintNotFoundError,
    NotificationDeliveryError,
)
from .collaborators import (
    AuditEvent,
    AuditSink,
    NotificationGateway,
    RecipientDirectory,
    PaymentLookup,
    OrderLookup,
    TenantStore,
    ActivityLogAuditSink,
    DatabaseNotificationGateway,
    SqlRecipientDirectory,
    SqlOrderLookup,
    SqlTenantStore,
)

__all__ = [
    'ComplaintStateMachine',
    'STATE_CONFIG',
    'ComplaintEscalationService',
    'ESCALATION_SLA_HOURS',
    'ComplaintResolutionService',
    'ResolutionDecision',
    # Errors
    'ComplaintEngineError',
    'DecisionValidationError',
    'IllegalStateError',
    'ComplaintNotFoundError',
    'NotificationDeliveryError',
    # Collaborators
    'AuditEvent',
    'AuditSink',
    'NotificationGateway',
    'RecipientDirectory',
    'PaymentLookup',
    'OrderLookup',
    'TenantStore',
    'ActivityLogAuditSink',
    'DatabaseNotificationGateway',
    'SqlRecipientDirectory',
    'SqlOrderLookup',
    'SqlTenantStore',
]
