"""Skill-overlap scoring between a candidate's skills and a job's required skills.

Each required skill is classified into exactly one tier, strongest first:

    exact     case-folded string equality
    category  either string contains the other
    related   a candidate skill contains a term the ontology lists for it
    none      no match

The score is the sum of tier weights normalized by the best possible sum
(every required skill an exact match), scaled to 0-100.
"""

import math
from collections.abc import Iterable

from matchengine.core.config import MatchingConfig
from matchengine.core.schemas import MatchTier, SkillMatch, clean_skills
from matchengine.matching.ontology import SkillOntology

# Score when a job lists no required skills: nothing to differentiate on.
NEUTRAL_SCORE = 50


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def clamp_score(value: int) -> int:
    return max(0, min(100, value))


class SkillScorer:
    """Weighted tiered skill matching. Stateless after construction."""

    def __init__(
        self,
        ontology: SkillOntology | None = None,
        config: MatchingConfig | None = None,
    ) -> None:
        config = config or MatchingConfig()
        self._ontology = ontology if ontology is not None else SkillOntology(config.related_skills)
        self._weights = {
            MatchTier.EXACT: config.exact_weight,
            MatchTier.CATEGORY: config.category_weight,
            MatchTier.RELATED: config.related_weight,
            MatchTier.NONE: 0.0,
        }

    def classify(self, required: str, candidate_skills: Iterable[str]) -> SkillMatch:
        """Classify one required skill; ``candidate_skills`` must be case-folded."""
        skill = required.casefold()
        candidates = list(candidate_skills)
        if skill in candidates:
            return SkillMatch(skill=required, tier=MatchTier.EXACT, matched_with=skill)
        for candidate in candidates:
            if candidate in skill or skill in candidate:
                return SkillMatch(skill=required, tier=MatchTier.CATEGORY, matched_with=candidate)
        related = self._ontology.find_related(skill, candidates)
        if related is not None:
            return SkillMatch(skill=required, tier=MatchTier.RELATED, matched_with=related)
        return SkillMatch(skill=required, tier=MatchTier.NONE)

    def classify_all(
        self,
        candidate_skills: Iterable[str],
        required_skills: Iterable[str],
    ) -> list[SkillMatch]:
        """One SkillMatch per distinct required skill, in the job's order."""
        candidates = [s.casefold() for s in clean_skills(candidate_skills)]
        return [self.classify(r, candidates) for r in clean_skills(required_skills)]

    def score_matches(self, matches: list[SkillMatch]) -> int:
        """Fold classified matches into a 0-100 score."""
        if not matches:
            return NEUTRAL_SCORE
        total = sum(self._weights[m.tier] for m in matches)
        max_possible = len(matches) * self._weights[MatchTier.EXACT]
        return clamp_score(round_half_up(total * 100 / max_possible))

    def score(
        self,
        candidate_skills: Iterable[str],
        required_skills: Iterable[str],
    ) -> int:
        """0-100 skill score: 50 with no required skills, 0 with no candidate skills."""
        required = clean_skills(required_skills)
        if not required:
            return NEUTRAL_SCORE
        candidates = clean_skills(candidate_skills)
        if not candidates:
            return 0
        return self.score_matches(self.classify_all(candidates, required))


_default_scorer = SkillScorer()


def score_skills(candidate_skills: Iterable[str], required_skills: Iterable[str]) -> int:
    """Score with the default weights and ontology."""
    return _default_scorer.score(candidate_skills, required_skills)
