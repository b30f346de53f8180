"""
SQLAlchemy ORM models for the Cafe Directory.

Cafes are keyed for import purposes by ``slug``. Amenity and feature tags
live twice: as ordered JSON lists on the cafe (display) and as CafeTag rows
(so "has every tag" filters run in SQL on both SQLite and PostgreSQL).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String, Integer, Float, Text, DateTime, JSON,
    ForeignKey, Index, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafe_directory.data.database import Base

TAG_AMENITY = "amenity"
TAG_FEATURE = "feature"


class Cafe(Base):
    """A cafe listing."""
    __tablename__ = "cafes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    address: Mapped[str] = mapped_column(String(500))
    postcode: Mapped[str] = mapped_column(String(20), index=True)
    city: Mapped[str] = mapped_column(String(100), index=True)
    area: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    website: Mapped[Optional[str]] = mapped_column(String(500))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    price_range: Mapped[Optional[str]] = mapped_column(String(50))
    amenities: Mapped[list] = mapped_column(JSON, default=list)
    features: Mapped[list] = mapped_column(JSON, default=list)
    opening_hours: Mapped[Optional[dict]] = mapped_column(JSON)
    rating: Mapped[Optional[float]] = mapped_column(Float)
    review_count: Mapped[Optional[int]] = mapped_column(Integer)
    thumbnail: Mapped[Optional[str]] = mapped_column(Text)
    images: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    tags: Mapped[list["CafeTag"]] = relationship(
        back_populates="cafe", cascade="all, delete-orphan", lazy="selectin",
    )

    __table_args__ = (Index("ix_cafes_lat_lng", "latitude", "longitude"),)

    def __repr__(self) -> str:
        return f"<Cafe(slug='{self.slug}', city='{self.city}')>"


class CafeTag(Base):
    """One amenity or feature tag of a cafe."""
    __tablename__ = "cafe_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cafe_id: Mapped[int] = mapped_column(Integer, ForeignKey("cafes.id", ondelete="CASCADE"), index=True)
    kind: Mapped[str] = mapped_column(String(10))  # amenity / feature
    value: Mapped[str] = mapped_column(String(255))

    cafe: Mapped["Cafe"] = relationship(back_populates="tags")

    __table_args__ = (
        UniqueConstraint("cafe_id", "kind", "value", name="uq_cafe_tag"),
        Index("ix_cafe_tags_kind_value", "kind", "value"),
    )


class ImportLog(Base):
    """Audit row written once per import run. Never read back by the pipelines."""
    __tablename__ = "import_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    filename: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(10))  # success / partial / failed
    rows_total: Mapped[int] = mapped_column(Integer, default=0)
    rows_success: Mapped[int] = mapped_column(Integer, default=0)
    rows_failed: Mapped[int] = mapped_column(Integer, default=0)
    errors: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), index=True)

    def __repr__(self) -> str:
        return f"<ImportLog(filename='{self.filename}', status={self.status})>"
