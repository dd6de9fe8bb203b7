from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ExtractionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


def compute_extraction_status(
    name: Optional[str],
    bio_line: Optional[str],
    location: Optional[str],
) -> ExtractionStatus:
    """Derive the completeness status of a profile.

    A record without a name is `failed`; one with a name but neither a bio
    line nor a location is `partial`; anything else is `success`. The
    extractor and the backend share this rule so stored records always agree
    with what was scraped.
    """
    if not (name or "").strip():
        return ExtractionStatus.FAILED
    if not (bio_line or "").strip() and not (location or "").strip():
        return ExtractionStatus.PARTIAL
    return ExtractionStatus.SUCCESS


class CamelModel(BaseModel):
    """Base for models exchanged as JSON with camelCase keys.

    Python code uses snake_case attributes; both spellings are accepted on
    input so payloads from the control UI and the backend round-trip.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExperienceItem(CamelModel):
    title: str = ""
    company: str = ""
    order: int = 0


class EducationItem(CamelModel):
    school: str = ""
    degree: str = ""
    order: int = 0


class ProfileRecord(CamelModel):
    """Structured profile produced by the extractor and sent to the backend."""
    name: str = ""
    url: str = ""
    about: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    follower_count: int = Field(default=0, ge=0)
    connection_count: int = Field(default=0, ge=0)
    bio_line: Optional[str] = None
    headline: Optional[str] = None
    industry: Optional[str] = None
    profile_picture: Optional[str] = None
    experience: List[ExperienceItem] = Field(default_factory=list)
    education: List[EducationItem] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    extraction_status: ExtractionStatus = ExtractionStatus.PENDING
    extraction_errors: Optional[str] = None
    extracted_at: Optional[datetime] = None

    def to_payload(self) -> dict:
        """Serialize for `POST /profiles`, dropping unset optional fields."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Outcome(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    ERROR = "error"


class UrlOutcome(CamelModel):
    url: str
    outcome: Outcome
    profile_id: Optional[int] = None
    name: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0


class ProgressEvent(CamelModel):
    processed: int
    total: int
    current_url: str
    progress: int


class BatchSummary(CamelModel):
    total: int
    processed: int = 0
    success: int = 0
    errors: int = 0
    duplicates: int = 0
    cancelled: bool = False
    started_at: datetime
    elapsed_ms: int = 0

    @property
    def success_rate(self) -> int:
        if not self.total:
            return 0
        return round(self.success / self.total * 100)


class BatchResult(CamelModel):
    summary: BatchSummary
    outcomes: List[UrlOutcome] = Field(default_factory=list)

    @property
    def successful(self) -> List[UrlOutcome]:
        return [o for o in self.outcomes if o.outcome == Outcome.CREATED]

    @property
    def skipped(self) -> List[UrlOutcome]:
        return [o for o in self.outcomes if o.outcome == Outcome.DUPLICATE]

    @property
    def failed(self) -> List[UrlOutcome]:
        return [o for o in self.outcomes if o.outcome == Outcome.ERROR]

    def to_dict(self) -> dict:
        return {
            "summary": {
                **self.summary.model_dump(by_alias=True, mode="json"),
                "successRate": self.summary.success_rate,
            },
            "successful": [o.model_dump(by_alias=True, mode="json") for o in self.successful],
            "skipped": [o.model_dump(by_alias=True, mode="json") for o in self.skipped],
            "failed": [o.model_dump(by_alias=True, mode="json") for o in self.failed],
        }


class ExtensionStatistics(CamelModel):
    total_processed: int = 0
    total_success: int = 0
    total_errors: int = 0
    total_duplicates: int = 0
    last_processed: Optional[datetime] = None
