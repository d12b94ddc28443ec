"""Payment model."""

import uuid

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base
from models.user import in_clause


PAYMENT_TYPES = ("ONE_OFF", "SUBSCRIPTION")
PAYMENT_PROVIDERS = ("stripe", "paypal", "telebirr", "cbe")
PAYMENT_STATUSES = ("pending", "completed", "failed", "cancelled", "refunded")


class Payment(Base):
    """Completed or attempted purchase."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint(in_clause("type", PAYMENT_TYPES), name="payments_type_check"),
        CheckConstraint(in_clause("provider", PAYMENT_PROVIDERS), name="payments_provider_check"),
        CheckConstraint(in_clause("status", PAYMENT_STATUSES), name="payments_status_check"),
        Index("idx_payments_user_id", "user_id"),
        Index("idx_payments_provider_session_id", "provider_session_id"),
        Index("idx_payments_status", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    provider = Column(String, nullable=False, default="stripe", server_default="stripe")
    provider_session_id = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    # "metadata" is reserved on declarative classes
    payment_metadata = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="payments")
