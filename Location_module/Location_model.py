"""
Location Model - Database schema for the locations table (donation box sites)
"""
from sqlalchemy import Column, String, Boolean, Float, Text, DateTime, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship
from database import Base
import uuid


class Location(Base):
    """
    A physical donation-box location.
    last_box_change is only advanced by the mark-changed transaction; is_active is a soft-delete flag.
    """
    __tablename__ = "locations"

    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        index=True
    )

    name = Column(String(255), nullable=False, index=True)
    address = Column(String(500), nullable=False)

    # GPS coordinates (validated to -90..90 / -180..180 before write)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    description = Column(Text, nullable=True)
    contact_person = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    last_box_change = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    box_changes = relationship(
        "BoxChange",
        back_populates="location",
        order_by="BoxChange.changed_at.desc()",
        lazy="select"
    )

    __table_args__ = (
        UniqueConstraint("name", "address", name="uq_locations_name_address"),
        Index("idx_locations_last_box_change", "last_box_change"),
    )
