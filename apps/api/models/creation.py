"""Creation model."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text, Uuid, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base
from models.user import in_clause


CREATION_MODES = ("web", "mobile", "social", "logo")


class Creation(Base):
    """Generated artifact owned by a user."""

    __tablename__ = "creations"
    __table_args__ = (
        CheckConstraint(in_clause("mode", CREATION_MODES), name="creations_mode_check"),
        Index("idx_creations_user_id", "user_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    html = Column(Text, nullable=False)
    original_image = Column(Text, nullable=True)
    mode = Column(String, nullable=False, default="web", server_default="web")
    purchased = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="creations")
    payment_sessions = relationship("PaymentSession", back_populates="creation", passive_deletes=True)


Index("idx_creations_created_at", Creation.created_at.desc())
