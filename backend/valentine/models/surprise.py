"""
Valentine Backend: Surprise SQLAlchemy Model
==============================================

What:  ORM model for the `surprises` table: one row per surprise document.
How:   Inherits from the shared DeclarativeBase; the table is created by
       Database.connect() when it does not exist yet.
Who:   Used only by SurpriseStore, which converts rows to SurpriseRecord.

Table Design:
    - id: 16 hex chars from secrets.token_hex(8), primary key
    - secret_key: 8 uppercase hex chars, stored but never checked
    - photos: JSON array of {"contentType": ..., "data": <base64>} kept in the
      row itself, so a surprise is read back with a single primary-key lookup
    - created_at: UTC, set once at creation
    Rows are never updated or deleted.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from valentine.database import Base
from valentine.schemas.surprise import Photo, SurpriseRecord


class Surprise(Base):
    """A stored surprise page."""

    __tablename__ = "surprises"

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment="Random hex id used in the shareable link",
    )

    secret_key: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Random uppercase hex token, not enforced by any endpoint",
    )

    partner_name: Mapped[str] = mapped_column(Text, nullable=False)
    sender_name: Mapped[str] = mapped_column(Text, nullable=False)

    photos: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        comment="Normalized JPEG photos as base64, in upload order",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def from_record(cls, record: SurpriseRecord) -> "Surprise":
        return cls(
            id=record.id,
            secret_key=record.secret_key,
            partner_name=record.partner_name,
            sender_name=record.sender_name,
            photos=[photo.model_dump(by_alias=True) for photo in record.photos],
            created_at=record.created_at,
        )

    def to_record(self) -> SurpriseRecord:
        return SurpriseRecord(
            id=self.id,
            secret_key=self.secret_key,
            partner_name=self.partner_name,
            sender_name=self.sender_name,
            photos=[Photo.model_validate(photo) for photo in self.photos],
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Surprise(id={self.id}, created_at='{self.created_at}')>"
