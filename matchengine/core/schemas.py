"""Core data models for the matching engine.

Boundary types (profiles, postings, queries) are frozen and normalized on
construction so the scoring functions never see raw input.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExperienceLevel(str, Enum):
    """Ordered seniority levels: entry < mid < senior."""

    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"

    @classmethod
    def coerce(cls, value: Any) -> "ExperienceLevel":
        """Map any value onto a level; unknown or missing values become ENTRY."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.ENTRY

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = (ExperienceLevel.ENTRY, ExperienceLevel.MID, ExperienceLevel.SENIOR)


class SortMode(str, Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    SALARY = "salary"
    POPULARITY = "popularity"


class MatchTier(str, Enum):
    """How a required skill was satisfied, strongest first."""

    EXACT = "exact"
    CATEGORY = "category"
    RELATED = "related"
    NONE = "none"


def clean_skills(value: Any) -> tuple[str, ...]:
    """Strip, drop empties and de-duplicate case-insensitively, keeping first spelling."""
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    seen: set[str] = set()
    result: list[str] = []
    for raw in value:
        skill = str(raw).strip()
        key = skill.casefold()
        if skill and key not in seen:
            seen.add(key)
            result.append(skill)
    return tuple(result)


def _naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class CandidateProfile(BaseModel):
    """A job seeker (or employer) account as seen by the matcher."""

    model_config = ConfigDict(frozen=True)

    id: int = 0
    name: str = ""
    email: str = ""
    role: str = "candidate"
    skills: tuple[str, ...] = ()
    experience_level: ExperienceLevel = ExperienceLevel.ENTRY
    bio: str = ""

    @field_validator("skills", mode="before")
    @classmethod
    def normalize_skills(cls, v: Any) -> tuple[str, ...]:
        return clean_skills(v)

    @field_validator("experience_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> ExperienceLevel:
        return ExperienceLevel.coerce(v)


class JobPosting(BaseModel):
    """A job listing with its engagement counters."""

    model_config = ConfigDict(frozen=True)

    id: int = 0
    employer_id: int = 0
    title: str
    company_name: str = ""
    location: str = ""
    description: str = ""
    job_type: str = "Full-time"
    salary_range: int = 0
    experience_level: ExperienceLevel = ExperienceLevel.ENTRY
    required_skills: tuple[str, ...] = ()
    posted_at: datetime = Field(default_factory=datetime.now)
    is_active: bool = True
    views: int = Field(default=0, ge=0)
    applications: int = Field(default=0, ge=0)

    @field_validator("required_skills", mode="before")
    @classmethod
    def normalize_skills(cls, v: Any) -> tuple[str, ...]:
        return clean_skills(v)

    @field_validator("experience_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> ExperienceLevel:
        return ExperienceLevel.coerce(v)

    @field_validator("posted_at")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return _naive(v)


class Application(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = 0
    user_id: int
    job_id: int
    applied_at: datetime = Field(default_factory=datetime.now)


class SkillMatch(BaseModel):
    """Classification of one required skill against a candidate's skills."""

    model_config = ConfigDict(frozen=True)

    skill: str
    tier: MatchTier
    matched_with: str | None = None


class MatchResult(BaseModel):
    """Score plus skill-gap detail for one candidate/job pair. Never persisted."""

    score: int = Field(ge=0, le=100)
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    match_percentage: int = Field(default=0, ge=0, le=100)
    experience_match: bool = False
    total_required: int = 0
    skill_matches: list[SkillMatch] = Field(default_factory=list)


class JobRecommendation(BaseModel):
    job: JobPosting
    score: int = Field(ge=0, le=100)


class CandidateRecommendation(BaseModel):
    candidate: CandidateProfile
    score: int = Field(ge=0, le=100)


class SearchQuery(BaseModel):
    """Free-text job search with filters, sort mode and cursor.

    Malformed filter values degrade to safe defaults instead of failing the search.
    """

    model_config = ConfigDict(frozen=True)

    term: str = ""
    location: str | None = None
    job_type: str | None = None
    skills: tuple[str, ...] = ()
    salary_min: int | None = None
    salary_max: int | None = None
    experience_level: ExperienceLevel | None = None
    sort: SortMode = SortMode.RELEVANCE
    cursor: int | None = None
    page_size: int = 20

    @field_validator("term", mode="before")
    @classmethod
    def strip_term(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("location", "job_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("skills", mode="before")
    @classmethod
    def canonical_skills(cls, v: Any) -> tuple[str, ...]:
        return tuple(sorted(s.casefold() for s in clean_skills(v)))

    @field_validator("salary_min", "salary_max", "cursor", mode="before")
    @classmethod
    def lenient_int(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        try:
            return int(v)
        except (TypeError, ValueError):
            return None

    @field_validator("experience_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> ExperienceLevel | None:
        if v is None or v == "":
            return None
        return ExperienceLevel.coerce(v)

    @field_validator("sort", mode="before")
    @classmethod
    def normalize_sort(cls, v: Any) -> SortMode:
        try:
            return SortMode(str(v).strip().lower())
        except ValueError:
            return SortMode.RELEVANCE

    @field_validator("page_size", mode="before")
    @classmethod
    def positive_page_size(cls, v: Any) -> int:
        try:
            return max(1, int(v))
        except (TypeError, ValueError):
            return 20

    def with_page_size_cap(self, max_page_size: int) -> "SearchQuery":
        if self.page_size <= max_page_size:
            return self
        return self.model_copy(update={"page_size": max_page_size})

    def fingerprint_payload(self) -> dict[str, Any]:
        """Canonical, JSON-safe view of the query used for cache keys."""
        return self.model_dump(mode="json")


class Pagination(BaseModel):
    has_more: bool = False
    next_cursor: int | None = None


class SearchPage(BaseModel):
    items: list[JobPosting] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class JobStats(BaseModel):
    job_id: int
    title: str
    views: int
    applications: int
    conversion_rate: float
    posted_at: datetime


class SkillDemand(BaseModel):
    skill: str
    count: int
    percentage: float


class EmployerAnalytics(BaseModel):
    """Per-employer aggregate over all of the employer's postings."""

    employer_id: int
    total_jobs: int = 0
    active_jobs: int = 0
    total_views: int = 0
    total_applications: int = 0
    jobs: list[JobStats] = Field(default_factory=list)
    top_skills: list[SkillDemand] = Field(default_factory=list)
