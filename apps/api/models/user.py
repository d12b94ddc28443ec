"""User model."""

import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


ROLES = ("user", "admin")
PLANS = ("FREE", "PAY_PER_USE", "PRO")
SUBSCRIPTION_STATUSES = ("free", "pro")


def in_clause(column: str, values) -> str:
    """Render a CHECK predicate restricting column to a fixed set of literals."""
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class User(Base):
    """User account holding the plan and the cached credit balance."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(in_clause("subscription_status", SUBSCRIPTION_STATUSES), name="users_subscription_status_check"),
        CheckConstraint(in_clause("role", ROLES), name="users_role_check"),
        CheckConstraint(in_clause("plan", PLANS), name="users_plan_check"),
        Index("idx_users_email", "email"),
        Index("idx_users_plan", "plan"),
        Index("idx_users_credits", "credits"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    subscription_status = Column(String, nullable=False, default="free", server_default="free")
    role = Column(String, nullable=False, default="user", server_default="user")
    plan = Column(String, nullable=False, default="FREE", server_default="FREE")
    credits = Column(Integer, nullable=False, default=0, server_default="0")
    pro_since = Column(DateTime(timezone=True), nullable=True)
    pro_until = Column(DateTime(timezone=True), nullable=True)
    daily_usage_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_reset_date = Column(Date, nullable=False, server_default=func.current_date())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    creations = relationship("Creation", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    credit_transactions = relationship(
        "CreditTransaction", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    payments = relationship("Payment", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    payment_sessions = relationship(
        "PaymentSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
