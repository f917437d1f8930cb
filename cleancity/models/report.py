from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Enum, Index
from sqlalchemy.orm import relationship
from ..db import Base


class ReportCategory(str, PyEnum):
    WASTE = "waste"
    WATER = "water"
    ROAD = "road"


class ReportStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_status_created_at", "status", "created_at"),
        Index("ix_reports_owner_id_created_at", "owner_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(
        Enum(ReportCategory, name="report_category", values_callable=_enum_values),
        nullable=False,
    )
    status = Column(
        Enum(ReportStatus, name="report_status", values_callable=_enum_values),
        nullable=False,
        default=ReportStatus.PENDING,
    )
    location = Column(String(500), nullable=False)
    image_url = Column(String(1024), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # Python-side timestamps keep sub-second ordering on SQLite
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id])
