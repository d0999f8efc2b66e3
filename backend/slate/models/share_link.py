import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String

from slate.core.database import Base
from slate.utils.clock import utcnow


class ShareLink(Base):
    __tablename__ = "share_links"
    __table_args__ = (
        CheckConstraint("view_count >= 0", name="ck_share_links_view_count_non_negative"),
        CheckConstraint("max_views IS NULL OR max_views >= 1", name="ck_share_links_max_views_positive"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    presentation_id = Column(String(36), ForeignKey("presentations.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    access_level = Column(String(5), nullable=False, default="read")
    # bcrypt hash, never the plaintext
    password_hash = Column(String(255), nullable=True)
    expires_at = Column(DateTime, nullable=True, index=True)
    max_views = Column(Integer, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
