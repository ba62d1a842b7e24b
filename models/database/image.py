from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from config.database import Base, utcnow


class Image(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, index=True)

    original_name = Column(String(255), nullable=False)
    file_name = Column(String(500), nullable=False)  # timestamp + suffix + original basename
    file_path = Column(String(1000), nullable=False)
    labeled_path = Column(String(1000), nullable=True)  # null until a render succeeds

    # Denormalized from the annotations table
    annotation_count = Column(Integer, nullable=False, default=0)
    is_labeled = Column(Boolean, nullable=False, default=False)

    uploaded_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    session = relationship("CollectionSession", back_populates="images")
    annotations = relationship("Annotation", back_populates="image", order_by="Annotation.id")
