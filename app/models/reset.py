"""Password reset token model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String

from app.database import Base
from app.models.user import new_id


class Reset(Base):
    """Single-use password reset grant. Valid while the row exists and ``now < expires_at``."""

    __tablename__ = "resets"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(256), nullable=False, index=True)
    token = Column(String(64), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at
