"""Job and candidate recommendations.

Both directions score a bounded pool fetched in a single query, keep scores at
or above a threshold, and return the best ``limit`` results. A missing subject
yields an empty list: having no recommendations is a normal outcome.

Ordering:
  jobs for a candidate   score desc, posted_at desc, id desc
  candidates for a job   score desc, candidate id asc
"""

import logging
import sqlite3

from matchengine.core.config import MatchingConfig
from matchengine.core.db import get_job, get_user, list_unapplied_candidates, list_unapplied_jobs
from matchengine.core.schemas import CandidateRecommendation, JobRecommendation
from matchengine.matching.calculator import MatchCalculator

logger = logging.getLogger(__name__)

CANDIDATE_ROLE = "candidate"


class Recommender:
    """Threshold-filtered, ranked recommendations in both directions.

    Usage::

        rec = Recommender(conn, MatchCalculator(config=cfg), cfg)
        jobs = rec.recommend_jobs(candidate_id=7)
        people = rec.recommend_candidates(job_id=3, limit=5)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        calculator: MatchCalculator,
        config: MatchingConfig,
    ) -> None:
        self._conn = conn
        self._calculator = calculator
        self._config = config

    def recommend_jobs(
        self,
        candidate_id: int,
        limit: int | None = None,
    ) -> list[JobRecommendation]:
        """Active, not-yet-applied jobs scoring at least ``job_threshold``."""
        limit = self._config.default_job_limit if limit is None else limit
        if limit <= 0:
            return []
        candidate = get_user(self._conn, candidate_id)
        if candidate is None or candidate.role != CANDIDATE_ROLE:
            logger.debug("No job recommendations: %s is not a candidate", candidate_id)
            return []

        pool = list_unapplied_jobs(self._conn, candidate_id, self._config.pool_size)
        scored = [
            JobRecommendation(job=job, score=self._calculator.score(candidate, job))
            for job in pool
        ]
        kept = [r for r in scored if r.score >= self._config.job_threshold]
        kept.sort(key=lambda r: (r.score, r.job.posted_at, r.job.id), reverse=True)
        logger.debug(
            "Job recommendations for %s: %d scanned, %d above %d",
            candidate_id, len(pool), len(kept), self._config.job_threshold,
        )
        return kept[:limit]

    def recommend_candidates(
        self,
        job_id: int,
        limit: int | None = None,
    ) -> list[CandidateRecommendation]:
        """Candidates who have not applied, scoring at least ``candidate_threshold``."""
        limit = self._config.default_candidate_limit if limit is None else limit
        if limit <= 0:
            return []
        job = get_job(self._conn, job_id)
        if job is None:
            logger.debug("No candidate recommendations: job %s not found", job_id)
            return []

        pool = list_unapplied_candidates(self._conn, job_id, self._config.pool_size)
        scored = [
            CandidateRecommendation(candidate=c, score=self._calculator.score(c, job))
            for c in pool
        ]
        kept = [r for r in scored if r.score >= self._config.candidate_threshold]
        kept.sort(key=lambda r: (-r.score, r.candidate.id))
        logger.debug(
            "Candidate recommendations for job %s: %d scanned, %d above %d",
            job_id, len(pool), len(kept), self._config.candidate_threshold,
        )
        return kept[:limit]
