from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .config import MAX_API_BATCH
from .models import CamelModel, EducationItem, ExperienceItem


class ProfileBase(CamelModel):
    about: Optional[str] = Field(default=None, max_length=5000)
    bio: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=255)
    bio_line: Optional[str] = Field(default=None, max_length=500)
    headline: Optional[str] = Field(default=None, max_length=500)
    industry: Optional[str] = Field(default=None, max_length=255)
    profile_picture: Optional[str] = Field(default=None, max_length=1000)
    extraction_errors: Optional[str] = None

    @field_validator("url", mode="before", check_fields=False)
    @classmethod
    def clean_profile_url(cls, v):
        """Prefix bare `linkedin.com/in/...` URLs with https and require a profile path."""
        if not isinstance(v, str):
            return v
        v = v.strip()
        if v and not v.startswith("http") and "linkedin.com/in/" in v:
            v = f"https://{v}"
        if "linkedin.com/in/" not in v:
            raise ValueError("URL must be a LinkedIn profile URL (linkedin.com/in/...)")
        return v

    @field_validator("profile_picture")
    @classmethod
    def check_picture_url(cls, v):
        if v and not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("Profile picture must be a valid http(s) URL")
        return v

    @field_validator("name", check_fields=False)
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v is not None else v


class ProfileCreate(ProfileBase):
    """Body of `POST /profiles`. Any client-sent extractionStatus is ignored."""
    name: str = Field(min_length=1, max_length=255)
    url: str = Field(max_length=500)
    follower_count: int = Field(default=0, ge=0)
    connection_count: int = Field(default=0, ge=0)
    experience: List[ExperienceItem] = Field(default_factory=list)
    education: List[EducationItem] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)


class ProfileUpdate(ProfileBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    url: Optional[str] = Field(default=None, max_length=500)
    follower_count: Optional[int] = Field(default=None, ge=0)
    connection_count: Optional[int] = Field(default=None, ge=0)
    experience: Optional[List[ExperienceItem]] = None
    education: Optional[List[EducationItem]] = None
    skills: Optional[List[str]] = None


class BatchCreateRequest(CamelModel):
    profiles: List[Dict[str, Any]] = Field(min_length=1, max_length=MAX_API_BATCH)
