import logging
import math
import time
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import crud
from .config import API_VERSION, DATABASE_URL, RUN_ENV
from .database import get_db, init_db, make_engine, make_session_factory, reset_db
from .errors import ApiError, ForbiddenError, NotFoundError
from .models import ExtractionStatus
from .response import build_error, build_response
from .schemas import BatchCreateRequest, ProfileCreate, ProfileUpdate


logger = logging.getLogger(__name__)

router = APIRouter()


class RequestStats:
    def __init__(self):
        self.requests = 0
        self.errors = 0
        self.started = time.monotonic()

    @property
    def uptime(self) -> float:
        return round(time.monotonic() - self.started, 3)

    def to_dict(self) -> dict:
        rate = (self.requests - self.errors) / self.requests * 100 if self.requests else 0
        return {
            "totalRequests": self.requests,
            "errors": self.errors,
            "successRate": f"{rate:.2f}%",
            "uptime": self.uptime,
        }


def _find_or_404(db: Session, profile_id: int):
    profile = crud.get_profile(db, profile_id)
    if profile is None:
        raise NotFoundError(f"Profile with ID {profile_id} not found")
    return profile


# ----------------------------------------------------------------------------
# Service info
# ----------------------------------------------------------------------------

@router.get("")
def api_info():
    return build_response(
        {
            "name": "LinkedIn Profile API",
            "version": API_VERSION,
            "endpoints": {
                "health": "GET /api/health",
                "stats": "GET /api/stats",
                "profiles": {
                    "list": "GET /api/profiles",
                    "create": "POST /api/profiles",
                    "get": "GET /api/profiles/{id}",
                    "update": "PUT /api/profiles/{id}",
                    "delete": "DELETE /api/profiles/{id}",
                    "stats": "GET /api/profiles/stats",
                    "search": "GET /api/profiles/search/{query}",
                    "byUrl": "GET /api/profiles/by-url/{url}",
                    "batch": "POST /api/profiles/batch",
                },
                "database": {
                    "health": "GET /api/database/health",
                    "stats": "GET /api/database/stats",
                    "reset": "POST /api/database/reset",
                },
            },
        },
        "LinkedIn Profile API",
    )


@router.get("/health")
def health(request: Request):
    return build_response(
        {
            "status": "healthy",
            "uptime": request.app.state.stats.uptime,
            "version": API_VERSION,
            "environment": request.app.state.run_env,
        },
        "API is healthy",
    )


@router.get("/stats")
def request_stats(request: Request):
    return build_response(request.app.state.stats.to_dict(), "Request statistics")


# ----------------------------------------------------------------------------
# Profiles
# ----------------------------------------------------------------------------

@router.get("/profiles")
def list_profiles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder"),
    status: Optional[ExtractionStatus] = Query(None),
    location: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    min_followers: Optional[int] = Query(None, alias="minFollowers", ge=0),
    max_followers: Optional[int] = Query(None, alias="maxFollowers", ge=0),
    db: Session = Depends(get_db),
):
    profiles, total = crud.list_profiles(
        db,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        status=status.value if status else None,
        location=location,
        search=search,
        min_followers=min_followers,
        max_followers=max_followers,
    )
    total_pages = math.ceil(total / limit) if total else 0
    has_next = page < total_pages
    has_prev = page > 1
    return build_response(
        {
            "profiles": [p.to_dict(include_errors=False) for p in profiles],
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalCount": total,
                "limit": limit,
                "hasNextPage": has_next,
                "hasPrevPage": has_prev,
                "nextPage": page + 1 if has_next else None,
                "prevPage": page - 1 if has_prev else None,
            },
            "filters": {
                "status": status.value if status else None,
                "location": location,
                "search": search,
                "minFollowers": min_followers,
                "maxFollowers": max_followers,
                "sortBy": sort_by,
                "sortOrder": sort_order.upper(),
            },
        },
        f"Retrieved {len(profiles)} profiles successfully",
    )


@router.post("/profiles", status_code=201)
def create_profile(profile_in: ProfileCreate, db: Session = Depends(get_db)):
    profile = crud.create_profile(db, profile_in)
    logger.info("✅ Profile created: %s (id=%s)", profile.name, profile.id)
    return build_response(
        {
            "profile": profile.to_dict(),
            "metadata": {
                "isComplete": profile.is_complete(),
                "fullInfo": profile.full_info(),
                "fieldsProvided": len(profile_in.model_fields_set),
                "extractionStatus": profile.extraction_status,
            },
        },
        "Profile created successfully",
    )


@router.get("/profiles/stats")
def profiles_stats(db: Session = Depends(get_db)):
    overview = crud.profile_stats(db)
    return build_response(
        {
            "overview": overview,
            "detailed": {"total": overview["total"], "byStatus": crud.count_by_status(db)},
            "recentProfiles": [
                {**p.summary(), "status": p.extraction_status} for p in crud.recent_profiles(db, 5)
            ],
            "topLocations": crud.top_locations(db, 10),
        },
        "Profile statistics retrieved successfully",
    )


@router.get("/profiles/search/{query}")
def search_profiles(query: str, limit: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)):
    profiles = crud.search_profiles(db, query, limit)
    return build_response(
        {
            "query": query,
            "profiles": [p.to_dict(include_errors=False) for p in profiles],
            "count": len(profiles),
        },
        f"Found {len(profiles)} profiles matching '{query}'",
    )


@router.get("/profiles/by-url/{url:path}")
def profile_by_url(url: str, db: Session = Depends(get_db)):
    profile = crud.get_by_url(db, url)
    if profile is None:
        raise NotFoundError(f"Profile with URL {url} not found")
    return build_response({"profile": profile.to_dict()}, "Profile found")


@router.post("/profiles/batch")
def create_batch(body: BatchCreateRequest, db: Session = Depends(get_db)):
    results = crud.create_batch(db, body.profiles)
    total = len(body.profiles)
    created, skipped, errors = len(results["created"]), len(results["skipped"]), len(results["errors"])
    if errors == total:
        status_code = 400
    elif created == 0:
        status_code = 409
    else:
        status_code = 201
    payload = build_response(
        {
            "summary": {
                "total": total,
                "created": created,
                "skipped": skipped,
                "errors": errors,
                "successRate": f"{round(created / total * 100)}%",
            },
            "results": results,
        },
        f"Batch operation completed: {created} created, {skipped} skipped, {errors} errors",
    )
    payload["success"] = created > 0
    return JSONResponse(status_code=status_code, content=payload)


@router.get("/profiles/{profile_id}")
def get_profile(profile_id: int, db: Session = Depends(get_db)):
    profile = _find_or_404(db, profile_id)
    return build_response(
        {
            "profile": profile.to_dict(),
            "metadata": {
                "isComplete": profile.is_complete(),
                "fullInfo": profile.full_info(),
                "lastUpdated": profile.to_dict()["lastUpdated"],
                "extractionStatus": profile.extraction_status,
            },
        },
        "Profile retrieved successfully",
    )


@router.put("/profiles/{profile_id}")
def update_profile(profile_id: int, update: ProfileUpdate, db: Session = Depends(get_db)):
    profile = _find_or_404(db, profile_id)
    profile, changed = crud.update_profile(db, profile, update)
    return build_response(
        {
            "profile": profile.to_dict(),
            "metadata": {
                "isComplete": profile.is_complete(),
                "fullInfo": profile.full_info(),
                "changedFields": changed,
                "fieldsUpdated": len(changed),
                "extractionStatus": profile.extraction_status,
            },
        },
        "Profile updated successfully",
    )


@router.delete("/profiles/{profile_id}")
def delete_profile(profile_id: int, db: Session = Depends(get_db)):
    profile = _find_or_404(db, profile_id)
    deleted = crud.delete_profile(db, profile)
    return build_response({"deletedProfile": deleted}, "Profile deleted successfully")


# ----------------------------------------------------------------------------
# Database maintenance
# ----------------------------------------------------------------------------

@router.get("/database/health")
def database_health(request: Request, db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise ApiError(f"Database connection failed: {e}")
    return build_response(
        {
            "status": "connected",
            "dialect": request.app.state.engine.dialect.name,
            "profiles": crud.profile_stats(db),
        },
        "Database is healthy",
    )


@router.get("/database/stats")
def database_stats(request: Request, db: Session = Depends(get_db)):
    return build_response(
        {
            "profiles": crud.profile_stats(db),
            "recentProfiles": [p.summary() for p in crud.recent_profiles(db, 5)],
            "tables": inspect(request.app.state.engine).get_table_names(),
        },
        "Database statistics retrieved successfully",
    )


@router.post("/database/reset")
def database_reset(request: Request):
    if request.app.state.run_env == "production":
        raise ForbiddenError("Database reset is not allowed in production")
    reset_db(request.app.state.engine)
    logger.warning("⚠️ Database reset: all profiles deleted")
    return build_response({"reset": True}, "Database reset successfully")


# ----------------------------------------------------------------------------
# Error handling
# ----------------------------------------------------------------------------

def _error_response(request: Request, status_code: int, error_type: str, message: str,
                    fields=None, extra=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=build_error(
            status_code, error_type, message, request.url.path, request.method, fields=fields, extra=extra
        ),
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.error_type, exc.message, exc.fields, exc.extra)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        fields.append({
            "field": ".".join(to_camel(p) for p in loc) or "body",
            "message": err.get("msg", "Invalid value"),
            "value": err.get("input"),
        })
    return _error_response(request, 400, "ValidationError", "Validation failed", fields=fields)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _error_response(
            request, 404, "RouteNotFound", f"Route {request.method} {request.url.path} not found"
        )
    return _error_response(request, exc.status_code, "HTTPError", str(exc.detail))


async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("❌ Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(request, 500, "ServerError", "Internal server error")


def create_app(database_url: Optional[str] = None, run_env: Optional[str] = None) -> FastAPI:
    """Build the profile API with its own engine and session factory.

    Tables are created here rather than in a startup hook so the app also
    works when mounted on transports that skip lifespan events.
    """
    engine = make_engine(database_url or DATABASE_URL)
    init_db(engine)

    app = FastAPI(title="LinkedIn Profile API", version=API_VERSION)
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.stats = RequestStats()
    app.state.run_env = run_env or RUN_ENV

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        stats = request.app.state.stats
        stats.requests += 1
        try:
            response = await call_next(request)
        except Exception:
            stats.errors += 1
            raise
        if response.status_code >= 400:
            stats.errors += 1
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, server_error_handler)

    app.include_router(router, prefix="/api")
    logger.info("🚀 Profile API ready (database: %s)", engine.url.render_as_string(hide_password=True))
    return app
