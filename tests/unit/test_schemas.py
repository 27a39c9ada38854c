"""Tests for value types: normalization at the boundary."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from matchengine.core.schemas import (
    CandidateProfile,
    ExperienceLevel,
    JobPosting,
    MatchResult,
    SearchQuery,
    SortMode,
    clean_skills,
)


class TestExperienceLevel:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("mid", ExperienceLevel.MID),
            (" SENIOR ", ExperienceLevel.SENIOR),
            (ExperienceLevel.MID, ExperienceLevel.MID),
            ("principal", ExperienceLevel.ENTRY),
            (None, ExperienceLevel.ENTRY),
            (3, ExperienceLevel.ENTRY),
        ],
    )
    def test_coerce(self, raw: object, expected: ExperienceLevel) -> None:
        assert ExperienceLevel.coerce(raw) is expected

    def test_rank_order(self) -> None:
        assert ExperienceLevel.ENTRY.rank < ExperienceLevel.MID.rank < ExperienceLevel.SENIOR.rank


class TestCleanSkills:
    def test_strips_and_dedupes(self) -> None:
        assert clean_skills([" React ", "react", "", "Node.js"]) == ("React", "Node.js")

    def test_comma_separated_string(self) -> None:
        assert clean_skills("python, django ,") == ("python", "django")

    def test_none(self) -> None:
        assert clean_skills(None) == ()


class TestCandidateProfile:
    def test_normalizes_inputs(self) -> None:
        p = CandidateProfile(id=1, skills=["Go", "go", " "], experience_level="nonsense")
        assert p.skills == ("Go",)
        assert p.experience_level is ExperienceLevel.ENTRY

    def test_frozen(self) -> None:
        p = CandidateProfile(id=1)
        with pytest.raises(ValidationError):
            p.name = "changed"  # type: ignore[misc]


class TestJobPosting:
    def test_defaults(self) -> None:
        job = JobPosting(title="Engineer")
        assert job.id == 0
        assert job.is_active is True
        assert job.views == 0
        assert job.required_skills == ()

    def test_aware_timestamp_made_naive(self) -> None:
        aware = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        job = JobPosting(title="Engineer", posted_at=aware)
        assert job.posted_at.tzinfo is None
        assert job.posted_at == aware.astimezone().replace(tzinfo=None)

    def test_negative_counter_rejected(self) -> None:
        with pytest.raises(ValidationError):
            JobPosting(title="Engineer", views=-1)


class TestMatchResult:
    def test_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            MatchResult(score=101)
        with pytest.raises(ValidationError):
            MatchResult(score=-1)


class TestSearchQuery:
    def test_defaults(self) -> None:
        q = SearchQuery()
        assert q.term == ""
        assert q.sort is SortMode.RELEVANCE
        assert q.page_size == 20
        assert q.cursor is None

    def test_malformed_values_degrade(self) -> None:
        q = SearchQuery(
            sort="best",
            experience_level="guru",
            salary_min="lots",
            page_size="many",
            cursor="abc",
        )
        assert q.sort is SortMode.RELEVANCE
        assert q.experience_level is ExperienceLevel.ENTRY
        assert q.salary_min is None
        assert q.page_size == 20
        assert q.cursor is None

    def test_page_size_at_least_one(self) -> None:
        assert SearchQuery(page_size=0).page_size == 1
        assert SearchQuery(page_size=-5).page_size == 1

    def test_page_size_cap(self) -> None:
        q = SearchQuery(page_size=500).with_page_size_cap(100)
        assert q.page_size == 100
        small = SearchQuery(page_size=10)
        assert small.with_page_size_cap(100) is small

    def test_skills_canonical(self) -> None:
        assert SearchQuery(skills="React, python").skills == ("python", "react")
        assert SearchQuery(skills=["python", "React"]).skills == ("python", "react")

    def test_blank_filters_become_none(self) -> None:
        q = SearchQuery(location="  ", job_type="", experience_level="")
        assert q.location is None
        assert q.job_type is None
        assert q.experience_level is None

    def test_fingerprint_payload_ignores_construction_order(self) -> None:
        a = SearchQuery(term="python", location="Berlin", skills=["Django", "AWS"])
        b = SearchQuery(skills=["aws", "django"], location="Berlin", term=" python ")
        assert a.fingerprint_payload() == b.fingerprint_payload()
