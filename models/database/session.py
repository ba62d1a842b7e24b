from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.orm import relationship
import enum
from config.database import Base, utcnow


class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class CollectionSession(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    product_number = Column(String(255), nullable=False, unique=True, index=True)
    status = Column(Enum(SessionStatus), nullable=False, default=SessionStatus.ACTIVE)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_saved = Column(DateTime(timezone=True), default=utcnow)

    # Relationships (logical ownership, no cascading delete)
    images = relationship("Image", back_populates="session", order_by="Image.id")
    form_fields = relationship("FormField", back_populates="session", order_by="FormField.id")
