"""
SQLAlchemy models and session management for the profile store.
"""
from datetime import datetime, timezone
from typing import Generator

from fastapi import Request
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, declared_attr, sessionmaker
from sqlalchemy.pool import StaticPool


Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    @declared_attr
    def created_at(cls):
        return Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @declared_attr
    def updated_at(cls):
        return Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Profile(Base, TimestampMixin):
    """
    Scraped LinkedIn profile, unique by URL.
    """
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    url = Column(String(500), nullable=False, unique=True, index=True)
    about = Column(Text)
    bio = Column(Text)
    location = Column(String(255), index=True)
    follower_count = Column(Integer, nullable=False, default=0)
    connection_count = Column(Integer, nullable=False, default=0)
    bio_line = Column(String(500))
    headline = Column(String(500))
    industry = Column(String(255))
    profile_picture = Column(String(1000))
    experience = Column(JSON, nullable=False, default=list)
    education = Column(JSON, nullable=False, default=list)
    skills = Column(JSON, nullable=False, default=list)
    extraction_status = Column(String(20), nullable=False, default="pending", index=True)
    extraction_errors = Column(Text)
    extracted_at = Column(DateTime(timezone=True), default=utcnow)
    last_updated = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self, include_errors: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "about": self.about,
            "bio": self.bio,
            "location": self.location,
            "followerCount": self.follower_count,
            "connectionCount": self.connection_count,
            "bioLine": self.bio_line,
            "headline": self.headline,
            "industry": self.industry,
            "profilePicture": self.profile_picture,
            "experience": self.experience or [],
            "education": self.education or [],
            "skills": self.skills or [],
            "extractionStatus": self.extraction_status,
            "extractedAt": _iso(self.extracted_at),
            "lastUpdated": _iso(self.last_updated),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if include_errors:
            data["extractionErrors"] = self.extraction_errors
        return data

    def full_info(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "headline": self.headline or self.bio_line,
            "location": self.location,
            "followerCount": self.follower_count,
            "connectionCount": self.connection_count,
            "extractedAt": _iso(self.extracted_at),
            "lastUpdated": _iso(self.last_updated),
            "status": self.extraction_status,
        }

    def is_complete(self) -> bool:
        return bool(self.name and self.url and (self.bio_line or self.headline))

    def summary(self) -> dict:
        return {"id": self.id, "name": self.name, "url": self.url, "createdAt": _iso(self.created_at)}


def make_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across the threadpool."""
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in database_url:
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def reset_db(engine: Engine) -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Yield a session from the application's session factory.

    Rolls back on failure; CRUD functions commit their own writes.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
