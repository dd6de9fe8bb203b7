"""
CRUD operations for profiles.
"""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .database import Profile, utcnow
from .errors import DuplicateEntryError, ValidationFailed
from .models import ExtractionStatus, compute_extraction_status
from .schemas import ProfileCreate, ProfileUpdate


SORT_COLUMNS = {
    "createdAt": Profile.created_at,
    "updatedAt": Profile.updated_at,
    "name": Profile.name,
    "location": Profile.location,
    "followerCount": Profile.follower_count,
    "connectionCount": Profile.connection_count,
    "extractedAt": Profile.extracted_at,
    "lastUpdated": Profile.last_updated,
    "extractionStatus": Profile.extraction_status,
}


def get_profile(db: Session, profile_id: int) -> Optional[Profile]:
    return db.get(Profile, profile_id)


def get_by_url(db: Session, url: str) -> Optional[Profile]:
    return db.execute(select(Profile).where(Profile.url == url)).scalar_one_or_none()


def _duplicate(existing: Profile) -> DuplicateEntryError:
    return DuplicateEntryError(
        "Profile with this LinkedIn URL already exists",
        extra={
            "existingProfile": existing.summary(),
            "suggestion": f"Use PUT /api/profiles/{existing.id} to update existing profile",
        },
    )


def create_profile(db: Session, profile_in: ProfileCreate) -> Profile:
    """
    Insert a profile, computing its extraction status from the data.

    Raises:
        DuplicateEntryError: a profile with the same URL is already stored
    """
    existing = get_by_url(db, profile_in.url)
    if existing is not None:
        raise _duplicate(existing)

    data = profile_in.model_dump(mode="json")
    now = utcnow()
    db_profile = Profile(
        **data,
        extraction_status=compute_extraction_status(
            profile_in.name, profile_in.bio_line, profile_in.location
        ).value,
        extracted_at=now,
        last_updated=now,
    )
    db.add(db_profile)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_by_url(db, profile_in.url)
        if existing is None:
            raise
        raise _duplicate(existing)
    db.refresh(db_profile)
    return db_profile


def update_profile(db: Session, profile: Profile, update: ProfileUpdate) -> Tuple[Profile, List[str]]:
    """
    Apply a partial update and return the profile with the camelCase names of
    the fields whose value actually changed.
    """
    changes = update.model_dump(mode="json", exclude_unset=True)
    if changes.get("url") and changes["url"] != profile.url:
        owner = get_by_url(db, changes["url"])
        if owner is not None and owner.id != profile.id:
            raise _duplicate(owner)

    changed = []
    for field_name, value in changes.items():
        if field_name in ("name", "url", "follower_count", "connection_count") and value is None:
            continue
        if getattr(profile, field_name) != value:
            setattr(profile, field_name, value)
            changed.append(to_camel(field_name))

    profile.extraction_status = compute_extraction_status(
        profile.name, profile.bio_line, profile.location
    ).value
    profile.last_updated = utcnow()
    db.commit()
    db.refresh(profile)
    return profile, changed


def delete_profile(db: Session, profile: Profile) -> Dict[str, Any]:
    info = profile.summary()
    db.delete(profile)
    db.commit()
    return info


def list_profiles(
    db: Session,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "createdAt",
    sort_order: str = "DESC",
    status: Optional[str] = None,
    location: Optional[str] = None,
    search: Optional[str] = None,
    min_followers: Optional[int] = None,
    max_followers: Optional[int] = None,
) -> Tuple[List[Profile], int]:
    """
    Filtered, sorted page of profiles and the total number of matches.
    """
    if sort_by not in SORT_COLUMNS:
        raise ValidationFailed(
            "Invalid sort field",
            fields=[{"field": "sortBy", "message": f"Must be one of: {', '.join(SORT_COLUMNS)}", "value": sort_by}],
        )
    if sort_order.upper() not in ("ASC", "DESC"):
        raise ValidationFailed(
            "Invalid sort order",
            fields=[{"field": "sortOrder", "message": "Must be ASC or DESC", "value": sort_order}],
        )

    conditions = []
    if status:
        conditions.append(Profile.extraction_status == status)
    if location:
        conditions.append(Profile.location.ilike(f"%{location}%"))
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(Profile.name.ilike(pattern), Profile.bio_line.ilike(pattern), Profile.headline.ilike(pattern))
        )
    if min_followers is not None:
        conditions.append(Profile.follower_count >= min_followers)
    if max_followers is not None:
        conditions.append(Profile.follower_count <= max_followers)

    column = SORT_COLUMNS[sort_by]
    order = column.asc() if sort_order.upper() == "ASC" else column.desc()
    total = db.execute(select(func.count(Profile.id)).where(*conditions)).scalar_one()
    rows = db.execute(
        select(Profile).where(*conditions).order_by(order, Profile.id).offset((page - 1) * limit).limit(limit)
    ).scalars().all()
    return list(rows), total


def search_profiles(db: Session, query: str, limit: int = 20) -> List[Profile]:
    pattern = f"%{query}%"
    stmt = (
        select(Profile)
        .where(
            or_(
                Profile.name.ilike(pattern),
                Profile.bio_line.ilike(pattern),
                Profile.headline.ilike(pattern),
                Profile.location.ilike(pattern),
            )
        )
        .order_by(Profile.created_at.desc(), Profile.id.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def count_by_status(db: Session) -> Dict[str, int]:
    counts = {status.value: 0 for status in ExtractionStatus}
    rows = db.execute(
        select(Profile.extraction_status, func.count(Profile.id)).group_by(Profile.extraction_status)
    ).all()
    for status, count in rows:
        counts[status] = count
    return counts


def _percent(part: int, total: int) -> str:
    return f"{part / total * 100:.2f}%" if total else "0%"


def profile_stats(db: Session) -> Dict[str, Any]:
    by_status = count_by_status(db)
    total = sum(by_status.values())
    return {
        "total": total,
        "successful": by_status["success"],
        "failed": by_status["failed"],
        "pending": by_status["pending"],
        "partial": by_status["partial"],
        "successRate": _percent(by_status["success"], total),
        "completionRate": _percent(by_status["success"] + by_status["partial"], total),
    }


def recent_profiles(db: Session, limit: int = 5) -> List[Profile]:
    stmt = select(Profile).order_by(Profile.created_at.desc(), Profile.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def top_locations(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    count = func.count(Profile.id)
    rows = db.execute(
        select(Profile.location, count)
        .where(Profile.location.is_not(None))
        .group_by(Profile.location)
        .order_by(count.desc())
        .limit(limit)
    ).all()
    return [{"location": location, "count": n} for location, n in rows]


def create_batch(db: Session, items: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Create each profile independently; one bad item never aborts the batch.
    """
    results = {"created": [], "skipped": [], "errors": []}
    for index, item in enumerate(items):
        try:
            profile_in = ProfileCreate.model_validate(item)
        except ValidationError as e:
            message = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            results["errors"].append({"index": index, "profileData": item, "error": message})
            continue
        try:
            profile = create_profile(db, profile_in)
        except DuplicateEntryError as e:
            results["skipped"].append({
                "index": index,
                "reason": e.message,
                "existingId": e.extra["existingProfile"]["id"],
                "url": profile_in.url,
            })
            continue
        results["created"].append({"index": index, "id": profile.id, "name": profile.name, "url": profile.url})
    return results
