"""Industry search over the static taxonomy using rapidfuzz."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache

from rapidfuzz import fuzz, process

from catalog.industries import INDUSTRY_TAXONOMY

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass
class Industry:
    """Industry taxonomy entry with synonyms."""
    name: str
    sector: str
    synonyms: list[str] = field(default_factory=list)


@dataclass
class IndustryMatch:
    name: str
    sector: str
    score: float
    matched_on: str


class IndustryIndex:
    """Fuzzy lookup over canonical industry names and their synonyms."""

    def __init__(self, taxonomy: list[Industry] | None = None) -> None:
        self.taxonomy = taxonomy or [
            Industry(item["canonical_industry"], item["sector"], list(item["synonyms"]))
            for item in INDUSTRY_TAXONOMY
        ]
        # Every searchable phrase maps back to its industry
        self._phrases: dict[str, Industry] = {}
        for industry in self.taxonomy:
            self._phrases[industry.name.lower()] = industry
            for synonym in industry.synonyms:
                self._phrases.setdefault(synonym.lower(), industry)
        logger.debug(f"Indexed {len(self.taxonomy)} industries with {len(self._phrases)} phrases")

    def names(self) -> list[str]:
        return [industry.name for industry in self.taxonomy]

    def search(self, query: str, *, limit: int | None = None, threshold: int | None = None) -> list[IndustryMatch]:
        """Best industries for ``query``, one entry per industry, highest score first."""
        text = query.strip().lower()
        if not text:
            return []
        limit = limit or settings.segments.industry_match_limit
        threshold = settings.segments.industry_match_threshold if threshold is None else threshold

        matches = process.extract(
            text,
            list(self._phrases),
            scorer=fuzz.WRatio,
            limit=limit * 4,
        )

        results: dict[str, IndustryMatch] = {}
        for phrase, score, _ in matches:
            if score < threshold:
                continue
            industry = self._phrases[phrase]
            if industry.name not in results:
                results[industry.name] = IndustryMatch(industry.name, industry.sector, round(score, 1), phrase)

        ranked = sorted(results.values(), key=lambda m: (-m.score, m.name))
        return ranked[:limit]


@lru_cache(maxsize=1)
def get_industry_index() -> IndustryIndex:
    return IndustryIndex()


def search_industries(query: str, *, limit: int | None = None) -> list[IndustryMatch]:
    return get_industry_index().search(query, limit=limit)
