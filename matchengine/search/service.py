"""Job search: filters, relevance or column sort, cursor pages, read-through cache."""

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime

from matchengine.core.cache import ResultCache
from matchengine.core.config import CacheConfig, RankingConfig
from matchengine.core.db import (
    SORT_COLUMNS,
    get_job,
    get_jobs,
    search_jobs_sorted,
    search_text_hits,
    to_fts_query,
)
from matchengine.core.errors import NotFoundError
from matchengine.core.schemas import JobPosting, SearchPage, SearchQuery, SortMode
from matchengine.search.ranker import build_pagination, rank_by_relevance, slice_after_cursor

logger = logging.getLogger(__name__)

SEARCH_PREFIX = "search"


def job_cache_key(job_id: int) -> str:
    return f"job:{job_id}"


class SearchService:
    """Runs SearchQuery objects against the job store.

    Relevance mode with a search term ranks every text match in Python and
    loads full rows for the requested page only. Every other case (including
    relevance without a term, which falls back to date order) is sorted and
    paged in SQL. A term with no searchable words matches nothing.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        cache: ResultCache,
        ranking: RankingConfig | None = None,
        cache_config: CacheConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._conn = conn
        self._cache = cache
        self._ranking = ranking or RankingConfig()
        self._cache_config = cache_config or CacheConfig()
        self._clock = clock

    def search_jobs(self, query: SearchQuery) -> SearchPage:
        query = query.with_page_size_cap(self._ranking.max_page_size)
        key = ResultCache.make_key(SEARCH_PREFIX, query.fingerprint_payload())
        payload = self._cache.get_or_compute(
            key,
            lambda: self._execute_search(query).model_dump(mode="json"),
            ttl=self._cache_config.search_ttl_seconds,
        )
        return SearchPage.model_validate(payload)

    def _execute_search(self, query: SearchQuery) -> SearchPage:
        page_size = query.page_size
        fts_query = to_fts_query(query.term)

        if query.term and fts_query is None:
            logger.debug("Search term %r has no searchable words", query.term)
            items: list[JobPosting] = []
        elif fts_query is not None and query.sort is SortMode.RELEVANCE:
            hits = search_text_hits(self._conn, query, fts_query)
            ranked = rank_by_relevance(hits, self._clock(), self._ranking)
            page_ids = slice_after_cursor(ranked, query.cursor, page_size)
            items = get_jobs(self._conn, page_ids)
            logger.debug("Ranked %d text matches for %r", len(hits), query.term)
        else:
            sort = query.sort if query.sort in SORT_COLUMNS else SortMode.DATE
            items = search_jobs_sorted(self._conn, query, sort, page_size, fts_query)

        logger.debug(
            "Search term=%r sort=%s cursor=%s -> %d items",
            query.term, query.sort.value, query.cursor, len(items),
        )
        return SearchPage(items=items, pagination=build_pagination(items, page_size))

    def get_job(self, job_id: int) -> JobPosting:
        """Single job by id, read through the cache. Raises NotFoundError."""
        key = job_cache_key(job_id)
        cached = self._cache.get(key)
        if cached is not None:
            return JobPosting.model_validate(cached)
        job = get_job(self._conn, job_id)
        if job is None:
            raise NotFoundError("job", job_id)
        self._cache.set(key, job.model_dump(mode="json"), self._cache_config.job_ttl_seconds)
        return job
