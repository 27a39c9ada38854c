"""Experience-level adjustment for match scores.

The penalty depends only on the distance between levels, so an overqualified
candidate is treated the same as an underqualified one at equal distance.
"""

from typing import Any

from matchengine.core.config import MatchingConfig
from matchengine.core.schemas import ExperienceLevel


def level_distance(candidate_level: Any, job_level: Any) -> int:
    """Absolute distance between two levels; unknown values count as entry."""
    a = ExperienceLevel.coerce(candidate_level)
    b = ExperienceLevel.coerce(job_level)
    return abs(a.rank - b.rank)


def experience_multiplier(
    candidate_level: Any,
    job_level: Any,
    config: MatchingConfig | None = None,
) -> float:
    """1.0 for the same level, 0.8 one level apart, 0.5 two or more (defaults)."""
    config = config or MatchingConfig()
    diff = level_distance(candidate_level, job_level)
    if diff == 0:
        return config.same_level_multiplier
    if diff == 1:
        return config.one_level_multiplier
    return config.distant_level_multiplier
