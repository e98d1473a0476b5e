"""
Complaint Engine - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Text, JSON, ForeignKey, Enum as SQLEnum, Boolean
from ..database import Base


def _enum_values(enum_cls):
    """Persist enum values (e.g. 'in_review') rather than member names."""
    return [member.value for member in enum_cls]


# =============================================================================
# ENUMS FOR COMPLAINT LIFECYCLE
# =============================================================================

class ComplaintStatus(str, Enum):
    """States in the complaint lifecycle."""
    OPEN = "open"
    IN_REVIEW = "in_review"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ResolutionType(str, Enum):
    """Admin outcomes for an escalated complaint."""
    DISMISS = "dismiss"
    PARTIAL_REFUND = "partial_refund"
    FULL_REFUND = "full_refund"
    WARNING = "warning"
    SUSPEND = "suspend"


class EscalationReason(str, Enum):
    """Why a complaint reached admin level."""
    AUTO_24H = "auto_24h"
    MANUAL_CLIENT = "manual_client"
    MANUAL_COOK = "manual_cook"


class ComplaintCategory(str, Enum):
    """Known complaint categories. The column itself is free-form."""
    FOOD_QUALITY = "food_quality"
    LATE_DELIVERY = "late_delivery"
    MISSING_ITEMS = "missing_items"
    WRONG_ORDER = "wrong_order"
    RUDE_BEHAVIOR = "rude_behavior"
    OTHER = "other"


class ActorType(str, Enum):
    """Actor types for the activity log."""
    USER = "USER"
    SYSTEM = "SYSTEM"


class UserRole(str, Enum):
    """Platform roles."""
    CLIENT = "client"
    COOK = "cook"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"


ADMIN_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)
REFUND_TYPES = (ResolutionType.PARTIAL_REFUND, ResolutionType.FULL_REFUND)
TERMINAL_STATUSES = (ComplaintStatus.RESOLVED, ComplaintStatus.DISMISSED)


class UserDB(Base):
    """User account. Clients, cooks and admins share this table."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # UUID
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole, values_callable=_enum_values), nullable=False, default=UserRole.CLIENT)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class TenantDB(Base):
    """A cook's storefront. Deactivated while the cook is suspended."""
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    cook_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class OrderDB(Base):
    """
    Order reference. Order persistence is owned elsewhere; the engine only
    reads the human-readable number for notifications.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)  # UUID
    order_number = Column(String(50), unique=True, nullable=False)  # e.g. ORD-260001
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True)
    client_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    cook_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    grand_total = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class PaymentTransactionDB(Base):
    """Payment attempts against an order. Only 'successful' ones count."""
    __tablename__ = "payment_transactions"

    id = Column(String(36), primary_key=True)  # UUID
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")  # pending, successful, failed
    amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# COMPLAINT
# =============================================================================

class ComplaintDB(Base):
    """
    Customer complaint against a cook for an order.
    Never deleted. Escalation and resolution columns are written once.
    """
    __tablename__ = "complaints"

    id = Column(String(36), primary_key=True)  # UUID
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    client_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    cook_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True)

    category = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(
        SQLEnum(ComplaintStatus, values_callable=_enum_values),
        nullable=False,
        default=ComplaintStatus.OPEN,
        index=True,
    )

    # Escalation (set once)
    is_escalated = Column(Boolean, nullable=False, default=False)
    escalation_reason = Column(SQLEnum(EscalationReason, values_callable=_enum_values), nullable=True)
    escalated_at = Column(DateTime, nullable=True)

    # Resolution (set once, when leaving ESCALATED)
    resolution_type = Column(SQLEnum(ResolutionType, values_callable=_enum_values), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=True)  # Refund types only
    suspension_days = Column(Integer, nullable=True)         # SUSPEND only
    suspension_ends_at = Column(DateTime, nullable=True)     # SUSPEND only
    resolved_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    # Timestamps
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# =============================================================================
# ACTIVITY LOG / NOTIFICATIONS
# =============================================================================

class ActivityLogDB(Base):
    """
    Immutable record of lifecycle events.
    Append-only - causer_id is NULL when the system acted.
    """
    __tablename__ = "activity_log"

    id = Column(String(36), primary_key=True)  # UUID
    log_name = Column(String(50), nullable=False, index=True)  # complaints, tenants
    event = Column(String(100), nullable=False, index=True)    # complaint_auto_escalated, warning_issued, ...

    subject_type = Column(String(50), nullable=False)  # complaint, user, tenant
    subject_id = Column(String(36), nullable=False, index=True)

    causer_type = Column(SQLEnum(ActorType), nullable=False)
    causer_id = Column(String(36), nullable=True)

    properties = Column(JSON, nullable=True)

    # Timestamps (immutable)
    created_at = Column(DateTime, default=datetime.utcnow)


class NotificationDB(Base):
    """Database channel for in-app notifications."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(100), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    action_url = Column(String(500), nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
