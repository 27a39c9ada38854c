"""Tests for tiered skill scoring and the skill ontology."""

import pytest

from matchengine.core.config import MatchingConfig
from matchengine.core.schemas import MatchTier
from matchengine.matching.ontology import SkillOntology
from matchengine.matching.skills import (
    NEUTRAL_SCORE,
    SkillScorer,
    round_half_up,
    score_skills,
)

CANDIDATE = ["JavaScript", "React", "Node.js", "MongoDB"]
FULL_STACK_JOB = ["JavaScript", "React", "Node.js", "PostgreSQL", "Docker"]


@pytest.fixture
def scorer() -> SkillScorer:
    return SkillScorer()


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------


class TestEdgeCases:
    def test_no_required_skills_is_neutral(self, scorer: SkillScorer) -> None:
        assert scorer.score(CANDIDATE, []) == NEUTRAL_SCORE == 50

    def test_no_skills_on_either_side_is_neutral(self, scorer: SkillScorer) -> None:
        assert scorer.score([], []) == 50

    def test_no_candidate_skills_scores_zero(self, scorer: SkillScorer) -> None:
        assert scorer.score([], ["Python"]) == 0

    def test_blank_skills_ignored(self, scorer: SkillScorer) -> None:
        # A blank candidate skill would otherwise be a substring of everything.
        assert scorer.score(["", "  "], ["Python"]) == 0
        assert scorer.score(["Python"], ["", " "]) == 50


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


class TestTiers:
    def test_exact_matches_score_full(self, scorer: SkillScorer) -> None:
        assert scorer.score(CANDIDATE, CANDIDATE) == 100

    def test_three_of_five_exact(self, scorer: SkillScorer) -> None:
        # 3 * 2.0 / (5 * 2.0)
        assert scorer.score(CANDIDATE, FULL_STACK_JOB) == 60

    def test_case_insensitive(self, scorer: SkillScorer) -> None:
        assert scorer.score(["javascript", "REACT", "node.js"], ["JavaScript", "React", "Node.js"]) == 100

    def test_category_match(self, scorer: SkillScorer) -> None:
        # "react" is contained in "react native": 1.5 / 2.0
        assert scorer.score(["React Native"], ["React"]) == 75

    def test_category_match_either_direction(self, scorer: SkillScorer) -> None:
        assert scorer.score(["SQL"], ["PostgreSQL"]) == 75

    def test_related_match(self, scorer: SkillScorer) -> None:
        # "express" is listed as related to "node": 1.0 / 2.0
        assert scorer.score(["Express"], ["Node"]) == 50

    def test_related_match_case_folded_key(self, scorer: SkillScorer) -> None:
        assert scorer.score(["TypeScript"], ["JavaScript"]) == 50

    def test_no_match(self, scorer: SkillScorer) -> None:
        assert scorer.score(["Cobol"], ["Rust"]) == 0


class TestClassify:
    def test_exact_beats_category(self, scorer: SkillScorer) -> None:
        match = scorer.classify("Java", ["javascript", "java"])
        assert match.tier is MatchTier.EXACT
        assert match.matched_with == "java"

    def test_category_beats_related(self, scorer: SkillScorer) -> None:
        # "javascript" contains "java" and is not consulted as a related term.
        match = scorer.classify("Java", ["javascript"])
        assert match.tier is MatchTier.CATEGORY

    def test_related_keeps_candidate_skill(self, scorer: SkillScorer) -> None:
        match = scorer.classify("Docker", ["kubernetes admin"])
        assert match.tier is MatchTier.RELATED
        assert match.matched_with == "kubernetes admin"

    def test_none_has_no_partner(self, scorer: SkillScorer) -> None:
        match = scorer.classify("Docker", ["excel"])
        assert match.tier is MatchTier.NONE
        assert match.matched_with is None

    def test_classify_all_keeps_job_spelling_and_order(self, scorer: SkillScorer) -> None:
        matches = scorer.classify_all(CANDIDATE, FULL_STACK_JOB)
        assert [m.skill for m in matches] == FULL_STACK_JOB
        assert [m.tier for m in matches] == [
            MatchTier.EXACT, MatchTier.EXACT, MatchTier.EXACT, MatchTier.NONE, MatchTier.NONE,
        ]


# ---------------------------------------------------------------------------
# Duplicates and bounds
# ---------------------------------------------------------------------------


class TestDuplicates:
    def test_duplicate_required_counted_once(self, scorer: SkillScorer) -> None:
        assert scorer.score(["React"], ["React", "react", "REACT"]) == 100

    def test_duplicates_do_not_inflate_score(self, scorer: SkillScorer) -> None:
        # Unique required: React, Docker -> 2.0 / 4.0
        assert scorer.score(["React"], ["React", "react", "Docker"]) == 50

    def test_duplicate_candidate_skills(self, scorer: SkillScorer) -> None:
        assert scorer.score(["React", "react"], ["React", "Docker"]) == 50


class TestBounds:
    @pytest.mark.parametrize(
        ("candidate", "required"),
        [
            (["a"], ["abc", "b", "c"]),
            (["Python", "Django"], ["python", "django", "flask", "aws"]),
            (["x" * 50], ["x"]),
            (["Go"], ["Golang", "Google Cloud", "MongoDB"]),
            ([], ["Anything"]),
            (["Anything"], []),
        ],
    )
    def test_score_in_range(self, scorer: SkillScorer, candidate: list[str], required: list[str]) -> None:
        assert 0 <= scorer.score(candidate, required) <= 100

    def test_module_level_helper(self) -> None:
        assert score_skills(CANDIDATE, FULL_STACK_JOB) == 60


class TestConfiguredWeights:
    def test_custom_weights(self) -> None:
        config = MatchingConfig(exact_weight=4.0, category_weight=1.0, related_weight=0.0)
        scorer = SkillScorer(config=config)
        # category 1.0 / exact 4.0
        assert scorer.score(["React Native"], ["React"]) == 25
        assert scorer.score(["Express"], ["Node"]) == 0

    def test_injected_ontology(self) -> None:
        scorer = SkillScorer(SkillOntology({"rust": ["cargo"]}))
        assert scorer.score(["Cargo"], ["Rust"]) == 50
        # The default table is not consulted.
        assert scorer.score(["Express"], ["Node"]) == 0


class TestRoundHalfUp:
    def test_halves_round_up(self) -> None:
        assert round_half_up(62.5) == 63
        assert round_half_up(0.5) == 1

    def test_below_half_rounds_down(self) -> None:
        assert round_half_up(66.4) == 66


# ---------------------------------------------------------------------------
# SkillOntology
# ---------------------------------------------------------------------------


class TestSkillOntology:
    def test_default_table(self) -> None:
        ontology = SkillOntology.default()
        assert "javascript" in ontology
        assert "JavaScript" in ontology
        assert "typescript" in ontology.related_terms("JavaScript")
        assert len(ontology) == 8

    def test_unknown_skill_has_no_terms(self) -> None:
        ontology = SkillOntology.default()
        assert ontology.related_terms("haskell") == frozenset()
        assert ontology.find_related("haskell", ["ghc"]) is None

    def test_terms_case_folded(self) -> None:
        ontology = SkillOntology({" Rust ": ["Cargo", " ", "Tokio"]})
        assert ontology.related_terms("rust") == frozenset({"cargo", "tokio"})

    def test_find_related_by_containment(self) -> None:
        ontology = SkillOntology.default()
        assert ontology.find_related("sql", ["mysql 8"]) == "mysql 8"

    def test_table_is_read_only(self) -> None:
        ontology = SkillOntology.default()
        with pytest.raises(TypeError):
            ontology._related["go"] = frozenset({"golang"})  # type: ignore[index]
