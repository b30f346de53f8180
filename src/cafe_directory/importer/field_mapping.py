"""
Field mapping: turns one loosely structured spreadsheet row into a CafeCandidate.

Spreadsheets arrive with whatever column names the exporting tool chose
(Outscraper, Google Sheets, hand-made CSVs). Each canonical field has an
ordered alias list; the first alias present with a non-empty value wins.
The alias tables below are plain data so they can be extended and versioned
without touching the lookup logic.
"""

import json
import math
import re
from typing import Any, Mapping, Optional, Sequence

from cafe_directory.config import settings as default_settings, ImportSettings, GeoSettings
from cafe_directory.exceptions import RowValidationError, InvalidCoordinatesError
from cafe_directory.geo import is_valid_coordinates
from cafe_directory.hours import WEEKDAYS, parse_hours_string
from cafe_directory.logging_config import get_logger
from cafe_directory.postcodes import format_postcode, looks_like_postcode
from cafe_directory.records import CafeCandidate, OpeningHours

logger = get_logger(__name__)

Row = Mapping[str, Any]


FIELD_MAPPINGS: dict[str, tuple[str, ...]] = {
    "name": ("name", "Name", "cafe_name", "business_name", "title", "place_name", "restaurant_name"),
    "address": ("full_address", "address", "Address", "street_address", "location", "street", "addr"),
    "postcode": ("postal_code", "postcode", "Postcode", "zip", "zip_code", "post_code"),
    "latitude": ("latitude", "lat", "Latitude", "LAT", "coord_lat", "lat_coord"),
    "longitude": ("longitude", "lng", "lon", "Longitude", "LNG", "LON", "coord_lng", "lng_coord"),
    "phone": ("phone", "Phone", "telephone", "tel", "phone_number", "contact_phone"),
    "website": ("site", "website", "Website", "url", "web", "homepage"),
    "email": ("email", "Email", "e_mail", "contact_email"),
    "description": ("about", "description", "Description", "summary", "details"),
    "city": ("city", "City", "locality", "town"),
    "area": ("borough", "area", "Area", "neighborhood", "district", "region", "zone"),
    "price_range": ("priceRange", "price_range", "price", "price_level", "cost"),
    "rating": ("rating", "Rating", "score"),
    "review_count": ("reviews", "review_count", "reviews_count", "total_reviews"),
    "thumbnail": ("thumbnail", "image", "photo", "photos"),
}

ARRAY_FIELD_MAPPINGS: dict[str, tuple[str, ...]] = {
    "amenities": ("amenities", "Amenities", "services", "subtypes", "category"),
    "features": ("features", "Features", "categories", "type", "subtypes"),
    "images": ("images", "Images", "photos"),
}

HOURS_COLUMNS: tuple[str, ...] = (
    "working_hours",
    "working_hours_csv_compatible",
    "opening_hours",
    "openingHours",
)

REQUIRED_FIELDS: tuple[str, ...] = ("name", "address", "postcode")

ARRAY_SPLIT_RE = re.compile(r"[,;|]")
HOURS_LINE_SPLIT_RE = re.compile(r"[,;\n]")

_DAY_TOKEN = r"monday|tuesday|wednesday|thursday|friday|saturday|sunday|mon|tue|wed|thu|fri|sat|sun"
HOURS_LINE_RE = re.compile(
    rf"\b({_DAY_TOKEN})\b(?:\s*[-–]\s*({_DAY_TOKEN})\b)?[\s:]*"
    r"(\d{1,2}(?::\d{2})?\s*(?:am|pm)?\s*[-–]\s*\d{1,2}(?::\d{2})?\s*(?:am|pm)?)",
    re.IGNORECASE,
)

DAY_ABBREVIATIONS = frozenset(day[:3] for day in WEEKDAYS)

SLUG_RE = re.compile(r"[^a-z0-9]+")


# --- Scalar helpers ---


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def get_field_value(row: Row, aliases: Sequence[str], default: Any = None) -> Any:
    """First non-empty value among ``aliases``, in order. Deterministic by construction."""
    for alias in aliases:
        value = row.get(alias)
        if not is_empty(value):
            return value
    return default


def to_text(value: Any) -> Optional[str]:
    """Coerce a cell to a trimmed string. Whole floats lose their ``.0`` (phone numbers)."""
    if is_empty(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def to_float(value: Any) -> Optional[float]:
    if is_empty(value) or isinstance(value, bool):
        return None
    try:
        result = float(str(value).strip())
    except ValueError:
        return None
    return None if math.isnan(result) or math.isinf(result) else result


def to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return int(number) if number is not None else None


def normalize_postcode(postcode: str) -> str:
    """``ss91aa`` → ``SS9 1AA``; text that is not postcode-shaped is only upper-cased."""
    if looks_like_postcode(postcode):
        return format_postcode(postcode)
    return postcode.upper()


def generate_slug(text: str) -> str:
    """``"Bean & Leaf, Leigh-on-Sea SS9 1AA"`` → ``"bean-leaf-leigh-on-sea-ss9-1aa"``."""
    return SLUG_RE.sub("-", text.lower()).strip("-")


def extract_city_from_address(address: str) -> str:
    """Second-to-last comma segment of the address, else the last, else ``"Unknown"``."""
    parts = [p.strip() for p in address.split(",")]
    if len(parts) >= 2 and parts[-2]:
        return parts[-2]
    return parts[-1] or "Unknown"


# --- Array fields ---


def parse_array_field(value: Any) -> list[str]:
    """
    Split a free-text tag cell on ``,`` ``;`` or ``|``.

    Lists pass through (stringified). Duplicates are dropped, first
    occurrence keeps its position.
    """
    if is_empty(value):
        return []
    if isinstance(value, (list, tuple)):
        items = [str(v).strip() for v in value if not is_empty(v)]
    elif isinstance(value, str):
        items = [item.strip() for item in ARRAY_SPLIT_RE.split(value)]
    else:
        return []
    return list(dict.fromkeys(item for item in items if item))


# --- Opening hours ---


def _expand_day(token: str) -> str:
    token = token.lower()
    return next(day for day in WEEKDAYS if day.startswith(token[:3]))


def _day_range(start: str, end: Optional[str]) -> list[str]:
    first = WEEKDAYS.index(_expand_day(start))
    if end is None:
        return [WEEKDAYS[first]]
    last = WEEKDAYS.index(_expand_day(end))
    span = (last - first) % len(WEEKDAYS)
    return [WEEKDAYS[(first + i) % len(WEEKDAYS)] for i in range(span + 1)]


def _hours_from_json(value: Any) -> Optional[OpeningHours]:
    """JSON object keyed by weekday. Values may be ``{open, close}`` or a range string."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if not isinstance(value, Mapping):
        return None

    hours: OpeningHours = {}
    for key, entry in value.items():
        day = str(key).strip().lower()
        if day not in WEEKDAYS and day not in DAY_ABBREVIATIONS:
            continue
        day = _expand_day(day)
        if isinstance(entry, Mapping) and entry.get("open") and entry.get("close"):
            parsed = parse_hours_string(f"{entry['open']}-{entry['close']}")
            if parsed:
                hours[day] = parsed
        elif isinstance(entry, (list, tuple)) and entry:
            parsed = parse_hours_string(str(entry[0]))
            if parsed:
                hours[day] = parsed
        elif isinstance(entry, str):
            parsed = parse_hours_string(entry)
            if parsed:
                hours[day] = parsed
    return hours


def _hours_from_text(text: str) -> OpeningHours:
    """``"Mon-Fri: 9:00-17:00; Sat 10am-4pm"`` → per-day hours."""
    hours: OpeningHours = {}
    for line in HOURS_LINE_SPLIT_RE.split(text):
        match = HOURS_LINE_RE.search(line)
        if not match:
            continue
        start, end, time_range = match.groups()
        parsed = parse_hours_string(time_range)
        if parsed is None:
            continue
        for day in _day_range(start, end):
            hours[day] = parsed
    return hours


def parse_opening_hours(row: Row) -> Optional[OpeningHours]:
    """
    Derive opening hours from a row.

    Tried in order:
        1. an hours column holding a JSON object keyed by weekday
        2. the same column as free text (``"Mon-Fri: 9:00-17:00"``)
        3. per-weekday columns (``monday`` / ``Monday``), each one time range

    Per-day columns override text-derived entries for the same day.
    Returns None when nothing recognisable is found, never an empty mapping.
    """
    raw = get_field_value(row, HOURS_COLUMNS)
    hours: OpeningHours = {}

    if raw is not None:
        from_json = _hours_from_json(raw)
        if from_json:
            return from_json
        if from_json is None and isinstance(raw, str):
            hours.update(_hours_from_text(raw))

    for day in WEEKDAYS:
        day_value = get_field_value(row, (day, day.capitalize()))
        if day_value is None:
            continue
        parsed = parse_hours_string(str(day_value))
        if parsed:
            hours[day] = parsed

    return hours or None


# --- Row normalization ---


def resolve_coordinates(
    latitude: Optional[float],
    longitude: Optional[float],
    geo_settings: GeoSettings,
    allow_fallback: bool = True,
) -> tuple[float, float, bool]:
    """
    Returns ``(lat, lng, used_fallback)``.

    Both present and non-zero → validated and kept. Anything missing or zero
    → the configured fallback point (when allowed).

    Raises:
        InvalidCoordinatesError: present and non-zero but out of range, or
            missing while fallback is disabled.
    """
    if latitude and longitude:
        if not is_valid_coordinates(latitude, longitude):
            raise InvalidCoordinatesError(latitude, longitude)
        return latitude, longitude, False

    if not allow_fallback:
        raise InvalidCoordinatesError(latitude or 0.0, longitude or 0.0)
    return geo_settings.fallback_latitude, geo_settings.fallback_longitude, True


def normalize_row(
    row: Row,
    row_number: int,
    import_settings: ImportSettings | None = None,
    geo_settings: GeoSettings | None = None,
) -> CafeCandidate:
    """
    Map and validate one spreadsheet row.

    Raises:
        RowValidationError: missing name / address / postcode, or bad coordinates.
    """
    import_settings = import_settings or default_settings.imports
    geo_settings = geo_settings or default_settings.geo

    values = {field: to_text(get_field_value(row, aliases)) for field, aliases in FIELD_MAPPINGS.items()}

    missing = [field for field in REQUIRED_FIELDS if not values[field]]
    if missing:
        raise RowValidationError(
            row_number,
            f"Missing required fields: name, address, or postcode (missing {', '.join(missing)})",
        )

    try:
        latitude, longitude, used_fallback = resolve_coordinates(
            to_float(values["latitude"]),
            to_float(values["longitude"]),
            geo_settings,
            allow_fallback=import_settings.coordinate_fallback,
        )
    except InvalidCoordinatesError as e:
        raise RowValidationError(row_number, e.message) from e

    if used_fallback:
        logger.warning(
            "Row %d: missing coordinates for %s, using fallback (%s, %s)",
            row_number, values["name"], latitude, longitude,
        )

    city = values["city"] or extract_city_from_address(values["address"])
    slug = generate_slug(f"{values['name']} {city} {values['postcode']}")
    if not slug:
        raise RowValidationError(row_number, "Could not derive a slug from name, city and postcode")

    return CafeCandidate(
        slug=slug,
        name=values["name"],
        address=values["address"],
        postcode=normalize_postcode(values["postcode"]),
        city=city,
        area=values["area"],
        latitude=latitude,
        longitude=longitude,
        phone=values["phone"],
        website=values["website"],
        email=values["email"],
        description=values["description"],
        price_range=values["price_range"],
        amenities=parse_array_field(get_field_value(row, ARRAY_FIELD_MAPPINGS["amenities"])),
        features=parse_array_field(get_field_value(row, ARRAY_FIELD_MAPPINGS["features"])),
        opening_hours=parse_opening_hours(row),
        rating=to_float(values["rating"]) or None,
        review_count=to_int(values["review_count"]) or None,
        thumbnail=values["thumbnail"],
        images=parse_array_field(get_field_value(row, ARRAY_FIELD_MAPPINGS["images"])),
        used_fallback_coordinates=used_fallback,
    )
