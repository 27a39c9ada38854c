"""Combine the skill score and experience multiplier into one match score."""

from matchengine.core.config import MatchingConfig
from matchengine.core.schemas import CandidateProfile, JobPosting, MatchResult, MatchTier
from matchengine.matching.experience import experience_multiplier
from matchengine.matching.skills import SkillScorer, clamp_score, round_half_up

# Tiers that count as "has the skill" in a gap report. Related-only matches
# still add to the score but are reported as missing.
_MATCHED_TIERS = frozenset({MatchTier.EXACT, MatchTier.CATEGORY})


class MatchCalculator:
    """Scores a candidate against a job and reports the skill gap."""

    def __init__(
        self,
        scorer: SkillScorer | None = None,
        config: MatchingConfig | None = None,
    ) -> None:
        self._config = config or MatchingConfig()
        self._scorer = scorer or SkillScorer(config=self._config)

    @property
    def scorer(self) -> SkillScorer:
        return self._scorer

    def score(self, candidate: CandidateProfile, job: JobPosting) -> int:
        skill_score = self._scorer.score(candidate.skills, job.required_skills)
        multiplier = experience_multiplier(
            candidate.experience_level, job.experience_level, self._config,
        )
        return clamp_score(round_half_up(skill_score * multiplier))

    def compute(self, candidate: CandidateProfile, job: JobPosting) -> MatchResult:
        matches = self._scorer.classify_all(candidate.skills, job.required_skills)
        matched = [m.skill for m in matches if m.tier in _MATCHED_TIERS]
        missing = [m.skill for m in matches if m.tier not in _MATCHED_TIERS]
        total = len(matches)
        percentage = round_half_up(len(matched) * 100 / total) if total else 0
        return MatchResult(
            score=self.score(candidate, job),
            matched_skills=matched,
            missing_skills=missing,
            match_percentage=percentage,
            experience_match=candidate.experience_level == job.experience_level,
            total_required=total,
            skill_matches=matches,
        )
