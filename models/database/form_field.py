from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from config.database import Base, utcnow


class FormField(Base):
    __tablename__ = "form_data"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, index=True)

    section = Column(String(50), nullable=False)  # product_info, auth1, auth2, regional, feedback
    field_name = Column(String(255), nullable=False)
    field_value = Column(Text, nullable=False, default="")

    updated_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    session = relationship("CollectionSession", back_populates="form_fields")

    __table_args__ = (
        UniqueConstraint("session_id", "section", "field_name", name="uq_form_data_session_section_field"),
    )
