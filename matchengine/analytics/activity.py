"""Job engagement tracking and per-employer aggregates.

Counter changes (views, applications) happen as single SQL increments and
immediately drop the cache entries derived from them:

  job:<job_id>                        cached job detail
  employer-analytics:<employer_id>    cached employer aggregate
"""

import logging
import sqlite3
from collections import Counter
from datetime import datetime

from matchengine.core.cache import ResultCache
from matchengine.core.config import CacheConfig
from matchengine.core.db import (
    get_job,
    get_user,
    insert_application,
    list_employer_jobs,
    record_job_view,
)
from matchengine.core.errors import NotFoundError
from matchengine.core.schemas import (
    EmployerAnalytics,
    JobPosting,
    JobStats,
    SkillDemand,
)
from matchengine.search.service import job_cache_key

logger = logging.getLogger(__name__)

TOP_SKILLS = 20


def employer_analytics_key(employer_id: int) -> str:
    return f"employer-analytics:{employer_id}"


def conversion_rate(applications: int, views: int) -> float:
    """Applications per hundred views, two decimals; 0 when never viewed."""
    if views <= 0:
        return 0.0
    return round(applications / views * 100, 2)


def summarize_employer(employer_id: int, jobs: list[JobPosting]) -> EmployerAnalytics:
    """Build the employer aggregate from the employer's postings.

    Skills are counted case-insensitively under their first spelling.
    """
    demand: Counter[str] = Counter()
    spelling: dict[str, str] = {}
    for job in jobs:
        for skill in job.required_skills:
            key = skill.casefold()
            spelling.setdefault(key, skill)
            demand[key] += 1
    top = sorted(demand.items(), key=lambda item: (-item[1], item[0]))[:TOP_SKILLS]
    return EmployerAnalytics(
        employer_id=employer_id,
        total_jobs=len(jobs),
        active_jobs=sum(1 for j in jobs if j.is_active),
        total_views=sum(j.views for j in jobs),
        total_applications=sum(j.applications for j in jobs),
        jobs=[
            JobStats(
                job_id=j.id,
                title=j.title,
                views=j.views,
                applications=j.applications,
                conversion_rate=conversion_rate(j.applications, j.views),
                posted_at=j.posted_at,
            )
            for j in jobs
        ],
        top_skills=[
            SkillDemand(
                skill=spelling[key],
                count=count,
                percentage=round(count / len(jobs) * 100, 2),
            )
            for key, count in top
        ],
    )


class ActivityTracker:
    """Records views and applications; serves cached employer analytics."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        cache: ResultCache,
        cache_config: CacheConfig | None = None,
    ) -> None:
        self._conn = conn
        self._cache = cache
        self._cache_config = cache_config or CacheConfig()

    def track_job_view(self, job_id: int, viewer_id: int | None = None) -> JobPosting | None:
        """Count a view; returns the refreshed job, or None if the job does not exist."""
        job = get_job(self._conn, job_id)
        if job is None:
            return None
        if not record_job_view(self._conn, job_id, viewer_id):
            logger.debug("Repeat view of job %s by %s not counted", job_id, viewer_id)
            return job
        self._invalidate(job)
        return get_job(self._conn, job_id)

    def record_application(
        self,
        user_id: int,
        job_id: int,
        applied_at: datetime | None = None,
    ) -> int | None:
        """Store an application. Returns its id, or None if the user already applied."""
        job = get_job(self._conn, job_id)
        if job is None:
            raise NotFoundError("job", job_id)
        if get_user(self._conn, user_id) is None:
            raise NotFoundError("user", user_id)
        application_id = insert_application(self._conn, user_id, job_id, applied_at)
        if application_id is None:
            logger.debug("User %s already applied to job %s", user_id, job_id)
            return None
        self._invalidate(job)
        return application_id

    def employer_analytics(self, employer_id: int) -> EmployerAnalytics:
        payload = self._cache.get_or_compute(
            employer_analytics_key(employer_id),
            lambda: summarize_employer(
                employer_id, list_employer_jobs(self._conn, employer_id),
            ).model_dump(mode="json"),
            ttl=self._cache_config.analytics_ttl_seconds,
        )
        return EmployerAnalytics.model_validate(payload)

    def _invalidate(self, job: JobPosting) -> None:
        self._cache.delete(job_cache_key(job.id), employer_analytics_key(job.employer_id))
