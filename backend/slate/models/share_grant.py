import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from slate.core.database import Base
from slate.utils.clock import utcnow


class ShareGrant(Base):
    __tablename__ = "share_grants"
    __table_args__ = (
        UniqueConstraint("presentation_id", "grantee_user_id", name="uq_share_grants_presentation_grantee"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    presentation_id = Column(String(36), ForeignKey("presentations.id", ondelete="CASCADE"), nullable=False)
    grantee_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    access_level = Column(String(5), nullable=False, default="read")
    granted_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
