"""
UK postcode utilities: shape checks and approximate postcode → coordinates lookup.

The lookup table holds area/district prefixes, not full postcodes. A query is
resolved to the longest registered prefix it starts with, so ``BR1 2AB`` lands
on ``BR1`` rather than the wider ``BR`` area.
"""

import re
from typing import Optional

import requests

from cafe_directory.config import settings as default_settings, GeoSettings
from cafe_directory.exceptions import InvalidPostcodeError
from cafe_directory.geo import Coordinates
from cafe_directory.logging_config import get_logger

logger = get_logger(__name__)


POSTCODE_COORDINATES: dict[str, tuple[float, float]] = {
    # London
    "E": (51.5320, 0.0551),
    "EC": (51.5174, -0.0836),
    "N": (51.5647, -0.1055),
    "NW": (51.5344, -0.1910),
    "SE": (51.4832, -0.0045),
    "SW": (51.4614, -0.1383),
    "W": (51.5136, -0.1997),
    "WC": (51.5246, -0.1340),

    # Bromley
    "BR": (51.4059, 0.0149),
    "BR1": (51.4059, 0.0149),   # Bromley
    "BR2": (51.3892, 0.0211),   # Bickley / Bromley Common
    "BR3": (51.4084, -0.0197),  # Beckenham
    "BR4": (51.3789, -0.0197),  # West Wickham
    "BR5": (51.3653, 0.0831),   # Orpington
    "BR6": (51.3517, 0.1033),   # Farnborough
    "BR7": (51.4059, 0.0649),   # Chislehurst
    "BR8": (51.4523, 0.1494),   # Swanley

    # East of England
    "CB": (52.2053, 0.1218),    # Cambridge
    "CB9": (52.0736, 0.4472),   # Saffron Walden
    "CM": (51.7343, 0.4691),    # Chelmsford
    "CM0": (51.6755, 0.6795),   # Burnham-on-Crouch
    "CM9": (51.7316, 0.6773),   # Maldon
    "CO": (51.8959, 0.8919),    # Colchester
    "CO1": (51.8959, 0.8919),
    "CO2": (51.8892, 0.8640),
    "CO3": (51.8914, 0.8485),
    "CO4": (51.9023, 0.9093),
    "CO9": (51.9319, 0.6061),   # Halstead
    "CO10": (52.0375, 0.7329),  # Sudbury
    "EN9": (51.8097, 0.0105),   # Waltham Abbey
    "IG": (51.5590, 0.0821),    # Ilford
    "IG7": (51.6094, 0.0342),   # Chigwell
    "IG8": (51.6194, 0.0934),   # Woodford Green
    "IG9": (51.6097, 0.0505),   # Buckhurst Hill
    "IG10": (51.6458, 0.0754),  # Loughton
    "IP": (52.0567, 1.1582),    # Ipswich
    "IP1": (52.0567, 1.1582),
    "IP2": (52.0567, 1.1300),
    "IP3": (52.0567, 1.1100),
    "IP4": (52.0667, 1.1582),
    "NR": (52.9493, 1.1328),    # Great Yarmouth / Lowestoft
    "PE": (52.5695, -0.2405),   # Peterborough
    "RM": (51.5590, 0.1834),    # Romford
    "RM1": (51.5764, 0.1834),
    "RM2": (51.5764, 0.1634),   # Gidea Park
    "RM3": (51.5964, 0.2234),   # Harold Wood
    "SG": (51.9017, -0.2018),   # Stevenage
    "SS": (51.5456, 0.7077),    # Southend
    "SS0": (51.5344, 0.7052),   # Westcliff-on-Sea
    "SS1": (51.5456, 0.7077),
    "SS2": (51.5372, 0.7142),
    "SS3": (51.5372, 0.7942),   # Shoeburyness
    "SS4": (51.5172, 0.6542),   # Rochford
    "SS5": (51.5572, 0.6542),   # Hockley
    "SS6": (51.5672, 0.6842),   # Rayleigh
    "SS7": (51.5172, 0.5842),   # Benfleet
    "SS8": (51.5072, 0.5742),   # Canvey Island
    "SS9": (51.5411, 0.6529),   # Leigh-on-Sea
}

# Full: SW1A 1AA / Partial: SW1A, E14, CO1 / Short: E1, SW1
POSTCODE_PATTERNS = (
    re.compile(r"^[A-Z]{1,2}[0-9][A-Z0-9]?\s?[0-9][A-Z]{2}$", re.IGNORECASE),
    re.compile(r"^[A-Z]{1,2}[0-9][A-Z0-9]?$", re.IGNORECASE),
    re.compile(r"^[A-Z]{1,2}[0-9]$", re.IGNORECASE),
)
FULL_POSTCODE_RE = POSTCODE_PATTERNS[0]


def _clean(postcode: str) -> str:
    return re.sub(r"\s+", "", postcode).upper()


def looks_like_postcode(query: str | None) -> bool:
    """True for full or partial UK postcode shapes (``SW1A 1AA``, ``E14``, ``E1``)."""
    if not query:
        return False
    query = query.strip()
    cleaned = _clean(query)
    if len(cleaned) < 2 or len(cleaned) > 8:
        return False
    return any(pattern.match(query) for pattern in POSTCODE_PATTERNS)


def get_postcode_coordinates(
    postcode: str | None,
    table: dict[str, tuple[float, float]] | None = None,
) -> Optional[Coordinates]:
    """Approximate coordinates for a postcode via longest-prefix match, or None."""
    if not postcode:
        return None
    table = POSTCODE_COORDINATES if table is None else table
    cleaned = _clean(postcode)

    for prefix in sorted(table, key=len, reverse=True):
        if cleaned.startswith(prefix):
            lat, lng = table[prefix]
            return Coordinates(lat, lng)
    return None


def format_postcode(postcode: str) -> str:
    """
    Upper-case with a single space before the inward code: ``sw1a1aa`` → ``SW1A 1AA``.

    Raises:
        InvalidPostcodeError: the text is not a full or partial UK postcode.
    """
    if not looks_like_postcode(postcode):
        raise InvalidPostcodeError(postcode)
    cleaned = _clean(postcode)
    if len(cleaned) <= 4:
        return cleaned
    return f"{cleaned[:-3]} {cleaned[-3:]}"


def is_valid_postcode(postcode: str) -> bool:
    """Full postcodes only; partial district codes are not valid here."""
    return bool(FULL_POSTCODE_RE.match(postcode.strip()))


class PostcodeGeocoder:
    """
    Resolves postcode-shaped search text to a point.

    The static prefix table is always consulted first. When enabled in
    settings, postcodes the table cannot place are sent to postcodes.io.
    Remote failures are logged and treated as "no match".
    """

    def __init__(self, geo_settings: GeoSettings | None = None, session: requests.Session | None = None):
        self.settings = geo_settings or default_settings.geo
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def geocode(self, query: str) -> Optional[Coordinates]:
        coords = get_postcode_coordinates(query)
        if coords is not None:
            return coords
        if self.settings.postcodes_io_enabled:
            return self._lookup_remote(query)
        return None

    def _lookup_remote(self, query: str) -> Optional[Coordinates]:
        cleaned = _clean(query)
        # Full postcodes and outward codes live under different endpoints
        if is_valid_postcode(query):
            url = f"{self.settings.postcodes_io_url}/postcodes/{cleaned}"
        else:
            url = f"{self.settings.postcodes_io_url}/outcodes/{cleaned}"

        try:
            resp = self.session.get(url, timeout=self.settings.timeout)
            if resp.status_code != 200:
                logger.debug("postcodes.io returned %s for %s", resp.status_code, query)
                return None
            result = resp.json().get("result") or {}
        except (requests.RequestException, ValueError) as e:
            logger.warning("Postcode lookup failed for %s: %s", query, e)
            return None

        lat, lng = result.get("latitude"), result.get("longitude")
        if lat is None or lng is None:
            return None
        return Coordinates(float(lat), float(lng))
