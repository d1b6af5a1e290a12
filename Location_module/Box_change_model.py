from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from database import Base
import uuid


class BoxChange(Base):
    """Append-only history of box changes. Rows are never updated or deleted."""
    __tablename__ = "box_changes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False, index=True)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    changed_by = Column(String(255), nullable=True)  # Worker name, free text
    notes = Column(Text, nullable=True)
    box_count = Column(Integer, nullable=True)

    location = relationship("Location", back_populates="box_changes")

    __table_args__ = (
        Index("idx_box_changes_location_changed_at", "location_id", "changed_at"),
    )
