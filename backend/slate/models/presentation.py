import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text

from slate.core.database import Base
from slate.utils.clock import utcnow


class Presentation(Base):
    __tablename__ = "presentations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    editor_data = Column(JSON, nullable=True)
    excalidraw_data = Column(JSON, nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)
    default_share_access = Column(String(5), nullable=False, default="read")
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, index=True)
