"""PaymentSession model tracking gateway checkout flows before confirmation."""

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base
from models.user import in_clause


PAYMENT_GATEWAYS = ("stripe", "telebirr", "cbe", "mpesa", "amole")
SESSION_TYPES = ("onetime", "subscription")
SESSION_STATUSES = ("pending", "completed", "failed", "cancelled")


class PaymentSession(Base):
    """Gateway-specific checkout session."""

    __tablename__ = "payment_sessions"
    __table_args__ = (
        CheckConstraint(in_clause("gateway", PAYMENT_GATEWAYS), name="payment_sessions_gateway_check"),
        CheckConstraint(in_clause("type", SESSION_TYPES), name="payment_sessions_type_check"),
        CheckConstraint(in_clause("status", SESSION_STATUSES), name="payment_sessions_status_check"),
        Index("idx_payment_sessions_user_id", "user_id"),
        Index("idx_payment_sessions_order_id", "order_id"),
        Index("idx_payment_sessions_status", "status"),
        Index("idx_payment_sessions_gateway", "gateway"),
    )

    id = Column(Text, primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    gateway = Column(String, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String, nullable=False, default="USD", server_default="USD")
    order_id = Column(Text, nullable=False, unique=True)
    creation_id = Column(Uuid, ForeignKey("creations.id", ondelete="SET NULL"), nullable=True)
    type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    transaction_id = Column(Text, nullable=True)
    session_metadata = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="payment_sessions")
    creation = relationship("Creation", back_populates="payment_sessions")


Index("idx_payment_sessions_created_at", PaymentSession.created_at.desc())
