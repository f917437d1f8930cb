from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from ..db import Base


class Blob(Base):
    """Metadata for an uploaded image; the bytes live in the blob directory."""

    __tablename__ = "blobs"

    id = Column(String(32), primary_key=True)
    content_type = Column(String(100), nullable=False)
    size_bytes = Column(Integer, nullable=False)
    sha256_hex = Column(String(64), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())
