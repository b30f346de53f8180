"""
Repository layer: ORM queries for cafes and import logs.

Works on a caller-owned Session; committing is the caller's job (see store.py).
"""

from typing import Any, Collection, Optional

from sqlalchemy import Select, select, func, or_
from sqlalchemy.orm import Session

from cafe_directory.data.models import Cafe, CafeTag, ImportLog, TAG_AMENITY, TAG_FEATURE
from cafe_directory.logging_config import get_logger
from cafe_directory.records import CafeCandidate, ImportOutcome, SearchCriteria

logger = get_logger(__name__)

TEXT_SEARCH_COLUMNS = (
    Cafe.name,
    Cafe.address,
    Cafe.postcode,
    Cafe.city,
    Cafe.area,
    Cafe.description,
)

# Every column the import overwrites on a repeat slug
MUTABLE_FIELDS = (
    "name", "address", "postcode", "city", "area", "latitude", "longitude",
    "phone", "website", "email", "description", "price_range",
    "amenities", "features", "opening_hours", "rating", "review_count",
    "thumbnail", "images",
)


class CafeRepository:
    """
    All database operations for cafes and import audit logs.

    Usage:
        session_factory = create_session_factory()
        with session_factory() as session:
            repo = CafeRepository(session)
            cafe, created = repo.upsert_cafe(candidate)
            session.commit()
    """

    def __init__(self, session: Session):
        self.session = session

    # --- Cafe reads ---

    def get_by_slug(self, slug: str) -> Optional[Cafe]:
        return self.session.execute(
            select(Cafe).where(Cafe.slug == slug)
        ).scalar_one_or_none()

    def count_all(self) -> int:
        return self.session.scalar(select(func.count(Cafe.id))) or 0

    @staticmethod
    def _tag_filter(kind: str, value: str):
        return Cafe.id.in_(
            select(CafeTag.cafe_id).where(CafeTag.kind == kind, CafeTag.value == value)
        )

    def _apply_criteria(self, stmt: Select, criteria: SearchCriteria) -> Select:
        if criteria.text:
            stmt = stmt.where(or_(
                *(col.icontains(criteria.text, autoescape=True) for col in TEXT_SEARCH_COLUMNS)
            ))

        if criteria.bounds is not None:
            b = criteria.bounds
            stmt = stmt.where(
                Cafe.latitude.between(b.min_lat, b.max_lat),
                Cafe.longitude.between(b.min_lng, b.max_lng),
            )

        # has-every semantics: one membership test per requested tag
        for amenity in criteria.amenities:
            stmt = stmt.where(self._tag_filter(TAG_AMENITY, amenity))
        for feature in criteria.features:
            stmt = stmt.where(self._tag_filter(TAG_FEATURE, feature))
        return stmt

    def search(self, criteria: SearchCriteria, limit: int, offset: int = 0) -> list[Cafe]:
        """Candidates matching ``criteria``, best rated first, then by name."""
        stmt = self._apply_criteria(select(Cafe), criteria)
        stmt = stmt.order_by(Cafe.rating.desc().nulls_last(), Cafe.name.asc())
        return list(self.session.scalars(stmt.limit(limit).offset(offset)))

    def count(self, criteria: SearchCriteria) -> int:
        stmt = self._apply_criteria(select(func.count(Cafe.id)), criteria)
        return self.session.scalar(stmt) or 0

    # --- Listing pages ---

    def list_by_city(self, city: str, limit: int = 24) -> list[Cafe]:
        stmt = (
            select(Cafe)
            .where(func.lower(Cafe.city) == city.lower())
            .order_by(Cafe.rating.desc().nulls_last(), Cafe.review_count.desc().nulls_last())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def count_by_city(self, city: str) -> int:
        return self.session.scalar(
            select(func.count(Cafe.id)).where(func.lower(Cafe.city) == city.lower())
        ) or 0

    def city_counts(self, limit: int = 50) -> list[tuple[str, int]]:
        """Cities ordered by number of cafes, most first."""
        count_col = func.count(Cafe.id)
        stmt = (
            select(Cafe.city, count_col)
            .group_by(Cafe.city)
            .order_by(count_col.desc(), Cafe.city)
            .limit(limit)
        )
        return [(city, count) for city, count in self.session.execute(stmt)]

    def area_counts(self, city: str) -> list[tuple[str, int]]:
        count_col = func.count(Cafe.id)
        stmt = (
            select(Cafe.area, count_col)
            .where(func.lower(Cafe.city) == city.lower(), Cafe.area.is_not(None), Cafe.area != "")
            .group_by(Cafe.area)
            .order_by(count_col.desc(), Cafe.area)
        )
        return [(area, count) for area, count in self.session.execute(stmt)]

    # --- Cafe writes ---

    def _sync_tags(self, cafe: Cafe, candidate: CafeCandidate, fields: Collection[str] = MUTABLE_FIELDS) -> None:
        """Make cafe.tags match the candidate's amenities/features without re-inserting survivors."""
        kinds = set()
        wanted = set()
        if "amenities" in fields:
            kinds.add(TAG_AMENITY)
            wanted |= {(TAG_AMENITY, v) for v in candidate.amenities}
        if "features" in fields:
            kinds.add(TAG_FEATURE)
            wanted |= {(TAG_FEATURE, v) for v in candidate.features}

        current = {(tag.kind, tag.value): tag for tag in cafe.tags if tag.kind in kinds}
        for key, tag in current.items():
            if key not in wanted:
                cafe.tags.remove(tag)
        for kind, value in wanted - current.keys():
            cafe.tags.append(CafeTag(kind=kind, value=value))

    def upsert_cafe(
        self, candidate: CafeCandidate, fields: Optional[Collection[str]] = None
    ) -> tuple[Cafe, bool]:
        """
        Insert or overwrite the cafe with ``candidate.slug``.

        ``fields`` limits which columns an existing cafe gets overwritten with;
        by default every column in MUTABLE_FIELDS is. New cafes always get the
        full candidate.

        Last write wins; there is no conflict detection between concurrent imports.

        Returns:
            (cafe, created)
        """
        data: dict[str, Any] = candidate.model_dump(include=set(MUTABLE_FIELDS), mode="json")

        existing = self.get_by_slug(candidate.slug)
        if existing:
            for key, value in data.items():
                if fields is None or key in fields:
                    setattr(existing, key, value)
            self._sync_tags(existing, candidate, MUTABLE_FIELDS if fields is None else fields)
            self.session.flush()
            return existing, False

        cafe = Cafe(slug=candidate.slug, **data)
        self._sync_tags(cafe, candidate)
        self.session.add(cafe)
        self.session.flush()
        return cafe, True

    # --- Import logs ---

    def add_import_log(self, filename: str, outcome: ImportOutcome, max_errors: int = 10) -> ImportLog:
        log = ImportLog(
            filename=filename,
            status=outcome.status.value,
            rows_total=outcome.total_rows,
            rows_success=outcome.success_count,
            rows_failed=outcome.failed_count,
            errors=outcome.errors[:max_errors],
        )
        self.session.add(log)
        self.session.flush()
        return log

    def list_import_logs(self, limit: int = 20) -> list[ImportLog]:
        stmt = select(ImportLog).order_by(ImportLog.created_at.desc(), ImportLog.id.desc()).limit(limit)
        return list(self.session.scalars(stmt))
