"""
Search orchestration: text, geographic and tag filters over the cafe store.

Cheap filtering happens in storage (text match, bounding box, tags); the exact
Haversine radius check and the "open now" check run afterwards on an
oversized candidate batch.
"""

from datetime import datetime
from typing import Callable, Literal, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from cafe_directory.config import settings as default_settings, SearchSettings
from cafe_directory.data.store import CafeStore
from cafe_directory.geo import Coordinates, calculate_distance, format_distance, get_bounding_box, parse_coordinates
from cafe_directory.hours import OpenStatus, open_status
from cafe_directory.logging_config import get_logger
from cafe_directory.postcodes import PostcodeGeocoder, looks_like_postcode
from cafe_directory.records import CafeRecord, SearchCriteria

logger = get_logger(__name__)

# Candidates fetched per requested result, to absorb radius / open-now attrition
OVERFETCH_FACTOR = 2


class SearchParams(BaseModel):
    """A search request. ``radius`` is in miles."""

    q: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius: float = Field(default=10.0, gt=0)
    open_now: bool = False
    amenities: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    units: Literal["miles", "km"] = "miles"
    limit: int = Field(default=20, ge=1)
    offset: int = Field(default=0, ge=0)


class SearchResult(BaseModel):
    cafes: list[CafeRecord]
    total: int
    limit: int
    offset: int
    center: Optional[Coordinates] = None

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


def split_list_param(value: Optional[str]) -> list[str]:
    """``"WiFi,Parking,"`` → ``["WiFi", "Parking"]``."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _default_clock(search_settings: SearchSettings) -> Callable[[], datetime]:
    tz = ZoneInfo(search_settings.timezone)
    return lambda: datetime.now(tz)


class SearchService:
    """
    Runs a search against a CafeStore.

    Usage:
        service = SearchService(store)
        result = service.search(SearchParams(q="SS9", amenities=["WiFi"]))
    """

    def __init__(
        self,
        store: CafeStore,
        geocoder: PostcodeGeocoder | None = None,
        clock: Callable[[], datetime] | None = None,
        search_settings: SearchSettings | None = None,
    ):
        self.store = store
        self.settings = search_settings or default_settings.search
        self.geocoder = geocoder or PostcodeGeocoder()
        self.clock = clock or _default_clock(self.settings)

    def resolve_center(self, params: SearchParams) -> Optional[Coordinates]:
        """Explicit lat/lng wins, then a ``"lat,lng"`` query, then a geocoded postcode."""
        if params.lat is not None and params.lng is not None:
            return Coordinates(params.lat, params.lng)
        coords = parse_coordinates(params.q)
        if coords is not None:
            return coords
        if params.q and looks_like_postcode(params.q):
            coords = self.geocoder.geocode(params.q)
            if coords is not None:
                logger.debug("Geocoded postcode %r to %s", params.q, coords)
            return coords
        return None

    def build_criteria(self, params: SearchParams, center: Optional[Coordinates]) -> SearchCriteria:
        # A "lat,lng" query is a location, not text to match
        text = None if parse_coordinates(params.q) else params.q.strip() or None
        return SearchCriteria(
            text=text,
            bounds=get_bounding_box(center, params.radius) if center else None,
            amenities=params.amenities,
            features=params.features,
        )

    @staticmethod
    def _with_distance(cafe: CafeRecord, center: Coordinates, units: str) -> CafeRecord:
        distance = calculate_distance(center, Coordinates(cafe.latitude, cafe.longitude))
        return cafe.model_copy(update={
            "distance": distance,
            "distance_label": format_distance(distance, units),
        })

    def search(self, params: SearchParams) -> SearchResult:
        center = self.resolve_center(params)
        criteria = self.build_criteria(params, center)

        # Page slicing happens after the in-memory filters, so fetch from the start
        candidates = self.store.find_candidates(
            criteria,
            limit=params.offset + params.limit * OVERFETCH_FACTOR,
        )

        if center is not None:
            with_distance = [self._with_distance(cafe, center, params.units) for cafe in candidates]
            candidates = sorted(
                (cafe for cafe in with_distance if cafe.distance <= params.radius),
                key=lambda cafe: cafe.distance,
            )

        if params.open_now:
            now = self.clock()
            candidates = [
                cafe for cafe in candidates
                if open_status(cafe.opening_hours, now) is OpenStatus.OPEN
            ]

        page = candidates[params.offset:params.offset + params.limit]

        # Upper bound: counted before the exact-radius and open-now filters
        total = self.store.count(criteria)

        logger.info(
            "Search q=%r center=%s radius=%s → %d results (total≤%d)",
            params.q, center, params.radius, len(page), total,
        )
        return SearchResult(
            cafes=page,
            total=total,
            limit=params.limit,
            offset=params.offset,
            center=center,
        )
