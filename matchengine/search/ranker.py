"""Relevance ranking for free-text job search.

    final = text_score + popularity_weight * popularity + freshness

popularity saturates at 1.0 once a posting reaches ``popularity_saturation``
applications; freshness decays linearly from ``freshness_max_boost`` for a
brand-new posting to 0 at ``freshness_window_days``. Ties are broken by id,
newest first, so the order is total and cursors are stable.
"""

from datetime import datetime

from matchengine.core.config import RankingConfig
from matchengine.core.db import TextHit
from matchengine.core.schemas import JobPosting, Pagination

_SECONDS_PER_DAY = 86_400.0


def popularity_boost(applications: int, saturation: int = 100) -> float:
    return min(max(applications, 0) / saturation, 1.0)


def freshness_boost(
    posted_at: datetime,
    now: datetime,
    window_days: float = 30.0,
    max_boost: float = 0.2,
) -> float:
    """Linear decay from max_boost (age 0) to 0 (age >= window_days)."""
    age_days = (now - posted_at).total_seconds() / _SECONDS_PER_DAY
    if age_days >= window_days:
        return 0.0
    if age_days <= 0:
        return max_boost
    return max_boost * (1.0 - age_days / window_days)


def relevance_score(hit: TextHit, now: datetime, config: RankingConfig) -> float:
    popularity = popularity_boost(hit.applications, config.popularity_saturation)
    freshness = freshness_boost(
        hit.posted_at, now, config.freshness_window_days, config.freshness_max_boost,
    )
    return hit.text_score + config.popularity_weight * popularity + freshness


def rank_by_relevance(
    hits: list[TextHit],
    now: datetime,
    config: RankingConfig,
) -> list[int]:
    """Job ids ordered by (relevance desc, id desc)."""
    scored = [(relevance_score(hit, now, config), hit.job_id) for hit in hits]
    scored.sort(reverse=True)
    return [job_id for _, job_id in scored]


def slice_after_cursor(
    ranked_ids: list[int],
    cursor: int | None,
    page_size: int,
) -> list[int]:
    """The page of ids following ``cursor`` in an already-ranked list.

    When the cursor job is not in the list, falls back to ids smaller than it.
    """
    if cursor is None:
        return ranked_ids[:page_size]
    try:
        position = ranked_ids.index(cursor)
    except ValueError:
        return [job_id for job_id in ranked_ids if job_id < cursor][:page_size]
    return ranked_ids[position + 1:position + 1 + page_size]


def build_pagination(items: list[JobPosting], page_size: int) -> Pagination:
    return Pagination(
        has_more=len(items) == page_size,
        next_cursor=items[-1].id if items else None,
    )
