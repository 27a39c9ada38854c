"""Engine facade: wires config, database, cache, scoring, search and tracking.

Data flow:
  1. Recommendations -> Recommender -> MatchCalculator (pure) -> bulk read
  2. Search          -> ResultCache (read-through) -> SearchService -> ranker
  3. Counters        -> ActivityTracker -> atomic SQL increment -> invalidation
"""

import logging
import sqlite3
from collections.abc import Callable, Iterable
from datetime import datetime

from matchengine.analytics.activity import ActivityTracker
from matchengine.core.cache import CacheBackend, MemoryCacheBackend, ResultCache
from matchengine.core.config import Settings
from matchengine.core.db import get_job, get_user, init_db
from matchengine.core.errors import NotFoundError
from matchengine.core.schemas import (
    CandidateProfile,
    CandidateRecommendation,
    EmployerAnalytics,
    JobPosting,
    JobRecommendation,
    MatchResult,
    SearchPage,
    SearchQuery,
)
from matchengine.matching.calculator import MatchCalculator
from matchengine.matching.ontology import SkillOntology
from matchengine.matching.recommender import Recommender
from matchengine.matching.skills import SkillScorer
from matchengine.search.service import SearchService

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Matching and relevance ranking over one database connection.

    Usage::

        engine = MatchingEngine.from_settings(Settings.from_yaml("config/settings.yaml"))
        engine.recommend_jobs(candidate_id=1)
        engine.search_jobs(SearchQuery(term="python", page_size=10))
        engine.close()
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        settings: Settings | None = None,
        cache_backend: CacheBackend | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings or Settings()
        self._conn = conn
        self.cache = ResultCache(cache_backend, default_ttl=self.settings.cache.search_ttl_seconds)

        matching = self.settings.matching
        self.scorer = SkillScorer(SkillOntology(matching.related_skills), matching)
        self.calculator = MatchCalculator(self.scorer, matching)
        self.recommender = Recommender(conn, self.calculator, matching)
        self.search = SearchService(
            conn, self.cache, self.settings.ranking, self.settings.cache, clock=clock,
        )
        self.activity = ActivityTracker(conn, self.cache, self.settings.cache)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MatchingEngine":
        """Open the configured database and in-memory cache."""
        conn = init_db(settings.database.path)
        logger.info("Opened database %s", settings.database.path)
        backend = (
            MemoryCacheBackend(settings.cache.max_entries) if settings.cache.enabled else None
        )
        if backend is None:
            logger.info("Result cache disabled; every query is computed directly")
        return cls(conn, settings, backend)

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    # --- scoring -----------------------------------------------------------

    def score_skills(
        self,
        candidate_skills: Iterable[str],
        required_skills: Iterable[str],
    ) -> int:
        return self.scorer.score(candidate_skills, required_skills)

    def compute_match(self, candidate: CandidateProfile, job: JobPosting) -> MatchResult:
        return self.calculator.compute(candidate, job)

    def skill_gap(self, candidate_id: int, job_id: int) -> MatchResult:
        """Match detail for stored records. Raises NotFoundError if either is missing."""
        candidate = get_user(self._conn, candidate_id)
        if candidate is None:
            raise NotFoundError("user", candidate_id)
        job = get_job(self._conn, job_id)
        if job is None:
            raise NotFoundError("job", job_id)
        return self.calculator.compute(candidate, job)

    # --- recommendations ---------------------------------------------------

    def recommend_jobs(
        self,
        candidate_id: int,
        limit: int | None = None,
    ) -> list[JobRecommendation]:
        return self.recommender.recommend_jobs(candidate_id, limit)

    def recommend_candidates(
        self,
        job_id: int,
        limit: int | None = None,
    ) -> list[CandidateRecommendation]:
        return self.recommender.recommend_candidates(job_id, limit)

    # --- search ------------------------------------------------------------

    def search_jobs(self, query: SearchQuery) -> SearchPage:
        return self.search.search_jobs(query)

    def get_job(self, job_id: int) -> JobPosting:
        return self.search.get_job(job_id)

    # --- activity ----------------------------------------------------------

    def track_job_view(self, job_id: int, viewer_id: int | None = None) -> JobPosting | None:
        return self.activity.track_job_view(job_id, viewer_id)

    def record_application(self, user_id: int, job_id: int) -> int | None:
        return self.activity.record_application(user_id, job_id)

    def employer_analytics(self, employer_id: int) -> EmployerAnalytics:
        return self.activity.employer_analytics(employer_id)
