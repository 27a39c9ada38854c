"""Static skill ontology: which skills count as related to a required skill."""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from matchengine.core.config import DEFAULT_RELATED_SKILLS


class SkillOntology:
    """Immutable skill -> related-terms table, case-folded.

    Only consulted when a required skill has no exact or partial match.
    """

    def __init__(self, related: Mapping[str, Iterable[str]]) -> None:
        table: dict[str, frozenset[str]] = {}
        for skill, terms in related.items():
            key = skill.strip().casefold()
            if key:
                cleaned = {t.strip().casefold() for t in terms if t.strip()}
                table[key] = table.get(key, frozenset()) | cleaned
        self._related = MappingProxyType(table)

    @classmethod
    def default(cls) -> "SkillOntology":
        return cls(DEFAULT_RELATED_SKILLS)

    def __len__(self) -> int:
        return len(self._related)

    def __contains__(self, skill: object) -> bool:
        return isinstance(skill, str) and skill.casefold() in self._related

    def related_terms(self, skill: str) -> frozenset[str]:
        return self._related.get(skill.casefold(), frozenset())

    def find_related(self, skill: str, candidate_skills: Iterable[str]) -> str | None:
        """Return the first candidate skill containing a term related to ``skill``.

        ``candidate_skills`` are expected case-folded.
        """
        terms = self.related_terms(skill)
        if not terms:
            return None
        for candidate in candidate_skills:
            if any(term in candidate for term in terms):
                return candidate
        return None
