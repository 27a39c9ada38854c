"""Configuration models and YAML loader for the matching engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

# Related-skill table used when a required skill has no direct or partial match.
DEFAULT_RELATED_SKILLS: dict[str, list[str]] = {
    "javascript": ["typescript", "node", "react", "vue", "angular"],
    "python": ["django", "flask", "fastapi", "pandas", "numpy"],
    "java": ["spring", "hibernate", "maven", "gradle"],
    "react": ["javascript", "typescript", "redux", "next"],
    "node": ["javascript", "typescript", "express", "nest"],
    "sql": ["mysql", "postgresql", "mongodb", "database"],
    "aws": ["cloud", "azure", "gcp", "devops"],
    "docker": ["kubernetes", "devops", "ci/cd", "jenkins"],
}


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/matchengine.db"


class CacheConfig(BaseModel):
    """Result cache settings. TTLs are in seconds."""

    enabled: bool = True
    max_entries: int = Field(default=1024, ge=1)
    search_ttl_seconds: int = Field(default=300, ge=1)
    analytics_ttl_seconds: int = Field(default=300, ge=1)
    job_ttl_seconds: int = Field(default=300, ge=1)


class MatchingConfig(BaseModel):
    """Weights, multipliers and thresholds for skill matching and recommendations."""

    exact_weight: float = Field(default=2.0, gt=0.0)
    category_weight: float = Field(default=1.5, ge=0.0)
    related_weight: float = Field(default=1.0, ge=0.0)

    same_level_multiplier: float = Field(default=1.0, ge=0.0, le=1.0)
    one_level_multiplier: float = Field(default=0.8, ge=0.0, le=1.0)
    distant_level_multiplier: float = Field(default=0.5, ge=0.0, le=1.0)

    job_threshold: int = Field(default=60, ge=0, le=100)
    candidate_threshold: int = Field(default=70, ge=0, le=100)
    pool_size: int = Field(default=100, ge=1)
    default_job_limit: int = Field(default=10, ge=1)
    default_candidate_limit: int = Field(default=20, ge=1)

    related_skills: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_RELATED_SKILLS.items()},
    )

    @field_validator("related_skills")
    @classmethod
    def casefold_related_skills(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        table: dict[str, list[str]] = {}
        for skill, related in v.items():
            key = skill.strip().casefold()
            if not key:
                continue
            terms = table.setdefault(key, [])
            for term in related:
                term = term.strip().casefold()
                if term and term not in terms:
                    terms.append(term)
        return table

    @model_validator(mode="after")
    def weights_ordered(self) -> "MatchingConfig":
        if not self.exact_weight >= self.category_weight >= self.related_weight:
            msg = "weights must satisfy exact >= category >= related"
            raise ValueError(msg)
        return self


class RankingConfig(BaseModel):
    """Search relevance composition and pagination limits."""

    popularity_weight: float = Field(default=2.0, ge=0.0)
    popularity_saturation: int = Field(default=100, ge=1)
    freshness_window_days: float = Field(default=30.0, gt=0.0)
    freshness_max_boost: float = Field(default=0.2, ge=0.0)
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def default_within_max(self) -> "RankingConfig":
        if self.default_page_size > self.max_page_size:
            msg = "default_page_size must not exceed max_page_size"
            raise ValueError(msg)
        return self


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
