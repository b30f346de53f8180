"""
Domain records shared by the import and search pipelines.

These are the strictly typed shapes that flow between layers; the loose
spreadsheet row (``dict[str, Any]``) never gets past the normalizer.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from cafe_directory.geo import BoundingBox


class CamelModel(BaseModel):
    """Serializes with camelCase keys (``reviewCount``), accepts either form on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DayHours(BaseModel):
    """One day's opening window in 24-hour ``HH:MM``."""

    open: str
    close: str


OpeningHours = dict[str, DayHours]


class CafeCandidate(BaseModel):
    """A validated import row, ready to be upserted by slug."""

    slug: str
    name: str
    address: str
    postcode: str
    city: str
    area: Optional[str] = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    price_range: Optional[str] = None
    amenities: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    opening_hours: Optional[OpeningHours] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    thumbnail: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    used_fallback_coordinates: bool = Field(default=False, exclude=True)


class CafeRecord(CamelModel):
    """A stored cafe as returned by the store and the API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    slug: str
    name: str
    address: str
    postcode: str
    city: str
    area: Optional[str] = None
    latitude: float
    longitude: float
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    price_range: Optional[str] = None
    amenities: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    opening_hours: Optional[OpeningHours] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    thumbnail: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    distance: Optional[float] = None
    distance_label: Optional[str] = None


class ImportStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class ImportOutcome(CamelModel):
    """Per-run import report. Ephemeral; the audit log keeps a truncated copy."""

    total_rows: int = 0
    success_count: int = 0
    failed_count: int = 0
    errors: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def success(self) -> bool:
        return self.failed_count == 0 and not (self.total_rows == 0 and self.errors)

    @property
    def status(self) -> ImportStatus:
        if self.success:
            return ImportStatus.SUCCESS
        if self.success_count == 0:
            return ImportStatus.FAILED
        return ImportStatus.PARTIAL

    @classmethod
    def fatal(cls, *errors: str) -> "ImportOutcome":
        """A batch that never got to process rows."""
        return cls(errors=list(errors))


class ImportLogRecord(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    filename: str
    status: ImportStatus
    rows_total: int
    rows_success: int
    rows_failed: int
    errors: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class SearchCriteria(BaseModel):
    """Storage-level filter: text OR-match, bounding box, has-every tag lists."""

    text: Optional[str] = None
    bounds: Optional[BoundingBox] = None
    amenities: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
