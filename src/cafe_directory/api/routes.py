import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from cafe_directory.api.schemas import (
    AreaCount,
    CafeDetail,
    CityCount,
    CityListing,
    ImportLogList,
    Pagination,
    SearchResponse,
)
from cafe_directory.config import Settings
from cafe_directory.data.store import CafeStore
from cafe_directory.exceptions import CafeNotFoundError, DatabaseError, UnsupportedFileTypeError
from cafe_directory.hours import is_open_now, today_hours
from cafe_directory.importer import CafeImporter, OutscraperImporter, SUPPORTED_EXTENSIONS, file_extension
from cafe_directory.records import ImportOutcome
from cafe_directory.search import SearchParams, SearchService, split_list_param

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_store(request: Request) -> CafeStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


@router.get("/search", response_model=SearchResponse)
def search_cafes(
    q: str = "",
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[float] = Query(None, gt=0, description="Search radius in miles."),
    open_now: bool = Query(False, alias="openNow"),
    amenities: Optional[str] = Query(None, description="Comma-separated; every tag must be present."),
    features: Optional[str] = Query(None, description="Comma-separated; every tag must be present."),
    units: Literal["miles", "km"] = Query("miles", description="Unit of the distanceLabel field."),
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    service: SearchService = Depends(get_search_service),
    settings: Settings = Depends(get_settings),
):
    """
    Search cafes by text, location and filters.

    Without ``lat``/``lng``, a ``q`` of the form ``"lat,lng"`` or a
    postcode-looking ``q`` (geocoded) is used as the search centre.
    """
    limit = limit or settings.search.default_limit
    if limit > settings.search.max_limit:
        raise HTTPException(status_code=422, detail=f"limit must be at most {settings.search.max_limit}")

    params = SearchParams(
        q=q,
        lat=lat,
        lng=lng,
        radius=radius or settings.search.default_radius,
        open_now=open_now,
        amenities=split_list_param(amenities),
        features=split_list_param(features),
        units=units,
        limit=limit,
        offset=offset,
    )

    try:
        result = service.search(params)
    except DatabaseError as e:
        logger.error("Search error: %s", e.message, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to search cafes")

    return SearchResponse(
        cafes=result.cafes,
        pagination=Pagination(
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            has_more=result.has_more,
        ),
    )


@router.get("/cafes/{slug}", response_model=CafeDetail)
def get_cafe(
    slug: str,
    store: CafeStore = Depends(get_store),
    service: SearchService = Depends(get_search_service),
):
    try:
        cafe = store.get_by_slug(slug)
    except DatabaseError as e:
        logger.error("Cafe fetch error for %s: %s", slug, e.message, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch cafe")
    if cafe is None:
        raise CafeNotFoundError(slug)

    now = service.clock()
    return CafeDetail(
        **cafe.model_dump(),
        open_now=is_open_now(cafe.opening_hours, now),
        today_hours=today_hours(cafe.opening_hours, now),
    )


@router.get("/cities", response_model=List[CityCount])
def list_cities(limit: int = Query(50, ge=1, le=500), store: CafeStore = Depends(get_store)):
    """Cities with the most cafes first."""
    try:
        return [CityCount(city=city, count=count) for city, count in store.city_counts(limit=limit)]
    except DatabaseError as e:
        logger.error("City listing error: %s", e.message, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list cities")


@router.get("/cities/{city}", response_model=CityListing)
def city_listing(city: str, store: CafeStore = Depends(get_store)):
    """Top cafes and areas for one city. ``/cities/leigh-on-sea`` also matches "Leigh on Sea"."""
    city_name = city.replace("-", " ").strip()
    try:
        cafes, total = store.list_by_city(city_name)
        if total == 0 and "-" in city:
            # Some city names keep their hyphens (Leigh-on-Sea)
            city_name = city
            cafes, total = store.list_by_city(city_name)
        areas = store.area_counts(city_name)
    except DatabaseError as e:
        logger.error("City page error for %s: %s", city, e.message, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load city")

    return CityListing(
        city=cafes[0].city if cafes else city_name.title(),
        cafes=cafes,
        areas=[AreaCount(area=area, count=count) for area, count in areas],
        total=total,
    )


@router.post("/import", response_model=ImportOutcome)
async def import_cafes(
    file: Optional[UploadFile] = File(None),
    store: CafeStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Import cafes from a CSV or Excel upload.

    200 for completed runs including partial failures, 400 for a missing or
    unsupported file, 500 when storage fails.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    if file_extension(file.filename) not in SUPPORTED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Invalid file type. Please upload a CSV or Excel file.")

    content = await file.read()
    importer = CafeImporter(store, settings)
    try:
        return await run_in_threadpool(importer.import_file, file.filename, content)
    except UnsupportedFileTypeError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except DatabaseError as e:
        logger.error("Import error for %s: %s", file.filename, e.message, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to import file")


@router.post("/import-advanced", response_model=ImportOutcome)
async def import_cafes_advanced(
    file: Optional[UploadFile] = File(None),
    store: CafeStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Outscraper multi-sheet import. Problems are reported in the body, always with 200."""
    if file is None or not file.filename:
        return ImportOutcome.fatal("No file provided. Please select a CSV or Excel file to upload.")

    content = await file.read()
    importer = OutscraperImporter(store, settings)
    return await run_in_threadpool(importer.import_file, file.filename, content)


@router.get("/import/logs", response_model=ImportLogList)
def list_import_logs(limit: int = Query(20, ge=1, le=100), store: CafeStore = Depends(get_store)):
    try:
        return ImportLogList(logs=store.list_import_logs(limit=limit))
    except DatabaseError as e:
        logger.error("Import log listing error: %s", e.message, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list import logs")
