"""
SQLAlchemy ORM models for the LED matrix database.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, LargeBinary, String, Text

from led_matrix.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Instance(Base):
    """A display device's control API endpoint, registered by the user."""

    __tablename__ = "instances"
    __table_args__ = (Index("instances_created_at_idx", "created_at"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)
    endpoint_url = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class Image(Base):
    """
    Stored source image.

    Images are deduplicated by the SHA-256 of their encoded bytes.
    """

    __tablename__ = "images"
    __table_args__ = (Index("images_created_at_idx", "created_at"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    content_hash = Column(String(64), unique=True, nullable=False)
    original_url = Column(Text, nullable=True)
    mime_type = Column(String(100), nullable=False)

    # Encoded image bytes (PNG/JPEG/...)
    data = Column(LargeBinary, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
