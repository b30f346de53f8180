from typing import List, Optional

from pydantic import ConfigDict, Field

from cafe_directory.records import CafeRecord, CamelModel, ImportLogRecord


class Pagination(CamelModel):
    total: int = Field(..., description="Matches before the exact-radius and open-now filters (an upper bound).")
    limit: int
    offset: int
    has_more: bool


class SearchResponse(CamelModel):
    """Response schema for the search endpoint."""
    cafes: List[CafeRecord]
    pagination: Pagination

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "cafes": [
                    {
                        "id": 1,
                        "slug": "bean-leaf-leigh-on-sea-ss9-1aa",
                        "name": "Bean & Leaf",
                        "address": "12 Broadway, Leigh-on-Sea, SS9 1AA",
                        "postcode": "SS9 1AA",
                        "city": "Leigh-on-Sea",
                        "latitude": 51.5411,
                        "longitude": 0.6529,
                        "amenities": ["WiFi", "Parking"],
                        "openingHours": {"monday": {"open": "08:00", "close": "17:00"}},
                        "rating": 4.6,
                        "distance": 0.4,
                        "distanceLabel": "0.4 mi",
                    }
                ],
                "pagination": {"total": 1, "limit": 20, "offset": 0, "hasMore": False},
            }
        }
    )


class CafeDetail(CafeRecord):
    """A single cafe with its opening state at request time."""
    open_now: Optional[bool] = Field(None, description="None when the cafe has no opening hours.")
    today_hours: str


class CityCount(CamelModel):
    city: str
    count: int


class AreaCount(CamelModel):
    area: str
    count: int


class CityListing(CamelModel):
    city: str
    cafes: List[CafeRecord]
    areas: List[AreaCount]
    total: int


class ImportLogList(CamelModel):
    logs: List[ImportLogRecord]


class HealthResponse(CamelModel):
    status: str
    storage: str
    cafe_count: int
    error: Optional[str] = None
