from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON
from sqlalchemy.orm import relationship
from config.database import Base, utcnow


class Annotation(Base):
    __tablename__ = "annotations"

    id = Column(Integer, primary_key=True, index=True)
    image_id = Column(Integer, ForeignKey("images.id"), nullable=False, index=True)
    # Copy of the owning image's session, for session-scoped queries
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, index=True)

    # Pixel space: {"x", "y", "width", "height"}
    bounding_box = Column(JSON, nullable=False)
    category = Column(String(255), nullable=False)
    subcategories = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    image = relationship("Image", back_populates="annotations")
