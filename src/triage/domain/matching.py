"""
Keyword Matching
================

Pure predicates over normalized request text.

The default strategy is plain substring search: no tokenization and no word
boundaries, so ``"raid"`` matches inside ``"raider"`` and ``"ilo"`` inside
``"pilot"``. That is the documented matching contract and a known source of
false positives. ``MatchMode.WORD`` is available for deployments that prefer
boundary-aware matching; it must be selected explicitly.
"""

import re
from typing import Iterable, List, Optional

from src.config import MatchMode


def normalize(raw: Optional[str]) -> str:
    """Lowercase and trim. ``None`` becomes the empty string."""
    return (raw or "").lower().strip()


def matched_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    """Keywords occurring as substrings of ``text``, sorted."""
    return sorted(k for k in set(keywords) if k and k in text)


def matches(text: str, keywords: Iterable[str]) -> bool:
    """True iff at least one keyword is a substring of ``text``."""
    return any(k and k in text for k in keywords)


def _word_pattern(keyword: str) -> re.Pattern:
    # \b only applies next to word characters; "fatal:" and "unreachable="
    # end on punctuation, so the boundary is anchored on the word side only.
    prefix = r"\b" if keyword[0].isalnum() else ""
    suffix = r"\b" if keyword[-1].isalnum() else ""
    return re.compile(prefix + re.escape(keyword) + suffix)


class KeywordMatcher:
    """
    Matching strategy injected into the router.

    ``substring`` delegates to the module-level predicates; ``word`` requires
    each keyword to start and end on a word boundary.
    """

    def __init__(self, mode: MatchMode = MatchMode.SUBSTRING):
        self.mode = MatchMode(mode)
        self._patterns: dict[str, re.Pattern] = {}

    def _pattern(self, keyword: str) -> re.Pattern:
        pattern = self._patterns.get(keyword)
        if pattern is None:
            pattern = _word_pattern(keyword)
            self._patterns[keyword] = pattern
        return pattern

    def matched(self, text: str, keywords: Iterable[str]) -> List[str]:
        if self.mode == MatchMode.SUBSTRING:
            return matched_keywords(text, keywords)
        return sorted(
            k for k in set(keywords) if k and self._pattern(k).search(text)
        )

    def matches(self, text: str, keywords: Iterable[str]) -> bool:
        if self.mode == MatchMode.SUBSTRING:
            return matches(text, keywords)
        return bool(self.matched(text, keywords))
