"""CreditTransaction model for the append-only credits ledger."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base
from models.user import in_clause


CREDIT_REASONS = ("INITIAL_FREE", "DOWNLOAD", "ONE_OFF_PURCHASE", "SUBSCRIPTION_MONTHLY")


class CreditTransaction(Base):
    """Immutable credit ledger entry. Positive change adds credits, negative consumes them."""

    __tablename__ = "credit_transactions"
    __table_args__ = (
        CheckConstraint(in_clause("reason", CREDIT_REASONS), name="credit_transactions_reason_check"),
        Index("idx_credit_transactions_user_id", "user_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE", deferrable=True, initially="DEFERRED"),
        nullable=False,
    )
    change = Column(Integer, nullable=False)
    reason = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", back_populates="credit_transactions")


Index("idx_credit_transactions_created_at", CreditTransaction.created_at.desc())
