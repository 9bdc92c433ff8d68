"""
Statistical keyword extraction for free-form (mixed Japanese / English) text.

No dictionary and no model: a handful of character-class patterns produce
candidates, a validity filter drops the junk, and a fixed linear score
(intrinsic + frequency + position + independence) ranks what is left.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from categories import char_class, categorize, is_known_term

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

MIN_TEXT_LENGTH = 10
MIN_KEYWORD_LENGTH = 2
MAX_KEYWORD_LENGTH = 15
MAX_RESULTS = 5
SCORE_THRESHOLD = 2.0
POSITION_WINDOW = 0.3

POSITION_BONUS = 0.5
INDEPENDENCE_BONUS = 0.5
KNOWN_TERM_BONUS = 1.0

KATAKANA_RE = re.compile(r"[ァ-ヴー]{3,}")
LATIN_RE = re.compile(r"(?<![A-Za-z])[A-Za-z]{2,}(?![A-Za-z])")
IDEOGRAPH_RE = re.compile(r"[一-鿿々]{2,6}")

HTTP_VERBS = {
    "get", "post", "put", "patch", "delete", "head", "options", "connect", "trace",
}

PROGRAMMING_TOKENS = {
    "function", "return", "const", "var", "let", "null", "undefined", "true",
    "false", "class", "def", "self", "this", "import", "export", "async",
    "await", "new", "elif", "else", "then", "print", "console", "log", "int",
    "str", "bool", "void", "try", "catch", "except", "finally",
}

STOP_WORDS = {
    "the", "and", "for", "with", "that", "this", "from", "your", "have", "are",
    "will", "into", "about", "more", "than", "their", "they", "them", "when",
    "where", "what", "which", "while", "there", "these", "those", "because",
    "would", "could", "should", "being", "been", "also", "over", "after",
    "before", "some", "much", "many", "just", "each", "such", "like", "very",
    "its", "our", "you", "yours", "his", "her", "him", "she", "was", "were",
    "had", "has", "can", "not", "but", "all", "any", "how", "who", "why",
    "or", "in", "on", "at", "to", "of", "by", "an", "is", "be", "do", "if",
    "so", "as", "it", "we", "us", "me", "my", "no",
}

EXCLUDED_TOKENS = HTTP_VERBS | PROGRAMMING_TOKENS | STOP_WORDS

# Particles and auxiliaries that should never open or close a keyword.
# The extraction regexes never match hiragana, so this only guards candidates
# handed to is_valid_candidate directly.
FUNCTION_FRAGMENTS = (
    "である", "する", "です", "ます", "こと", "もの", "ため", "よう", "から", "まで",
    "の", "は", "が", "を", "に", "で", "と", "も", "へ", "や", "な", "た", "て",
)

_HIRAGANA_ONLY = re.compile(r"[ぁ-ゖー]+")


@dataclass(frozen=True)
class ScoredKeyword:
    keyword: str
    score: float
    category: str
    intrinsic: float
    frequency: float
    position: float
    independence: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "keyword": self.keyword,
            "score": self.score,
            "category": self.category,
            "breakdown": {
                "intrinsic": self.intrinsic,
                "frequency": self.frequency,
                "position": self.position,
                "independence": self.independence,
            },
        }


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


def extract_candidates(text: str) -> List[str]:
    """Return de-duplicated pattern matches in order of first occurrence."""
    if not text:
        return []

    lowered = text.lower()
    found: Dict[str, Tuple[int, str]] = {}

    def _add(candidate: str, index: int) -> None:
        key = candidate.lower()
        if key in EXCLUDED_TOKENS:
            return
        if key not in lowered:
            return
        current = found.get(key)
        if current is None or index < current[0]:
            found[key] = (index, candidate)

    for match in KATAKANA_RE.finditer(text):
        _add(match.group(0), match.start())

    for match in LATIN_RE.finditer(text):
        word = match.group(0)
        if len(word) >= 3 or word.isupper():
            _add(word, match.start())

    for match in IDEOGRAPH_RE.finditer(text):
        _add(match.group(0), match.start())

    ordered = sorted(found.values(), key=lambda item: item[0])
    return [candidate for _index, candidate in ordered]


def is_valid_candidate(candidate: str) -> bool:
    if not candidate:
        return False
    if len(candidate) < MIN_KEYWORD_LENGTH or len(candidate) > MAX_KEYWORD_LENGTH:
        return False
    if candidate.isdigit():
        return False
    if all(not ch.isalnum() for ch in candidate) or set(candidate) <= {"ー"}:
        return False
    if _HIRAGANA_ONLY.fullmatch(candidate):
        return False
    if char_class(candidate) == "katakana" and len(candidate) < 3:
        return False
    if candidate.lower() in EXCLUDED_TOKENS:
        return False
    for fragment in FUNCTION_FRAGMENTS:
        if candidate.startswith(fragment) or candidate.endswith(fragment):
            return False
    return True


def _intrinsic_score(candidate: str) -> float:
    cls = char_class(candidate)
    length = len(candidate)
    if cls == "katakana":
        score = 1.0 + 0.1 * min(length, 10)
    elif cls == "acronym":
        score = 1.2
    elif cls == "latin":
        base = 1.0 if candidate[0].isupper() else 0.4
        score = base + 0.1 * min(max(length - 3, 0), 5)
    elif cls == "kanji":
        if length == 2:
            score = 0.8
        elif length <= 4:
            score = 1.2
        else:
            score = 1.0
    else:
        score = 0.5
    if is_known_term(candidate):
        score += KNOWN_TERM_BONUS
    return round(score, 2)


def _is_word_neighbour(ch: Optional[str], cls: str) -> bool:
    if not ch:
        return False
    if cls in {"latin", "acronym"}:
        return ch.isascii() and (ch.isalnum() or ch == "_")
    return char_class(ch) == cls


def score_candidate(candidate: str, text: str) -> Optional[ScoredKeyword]:
    """Score a single candidate against its source text; None when it is not in the text."""
    lowered_text = text.lower()
    needle = candidate.lower()
    index = lowered_text.find(needle)
    if index < 0:
        return None

    intrinsic = _intrinsic_score(candidate)

    count = lowered_text.count(needle)
    frequency = round(1.0 / count, 2)

    position = POSITION_BONUS if index < len(lowered_text) * POSITION_WINDOW else 0.0

    cls = char_class(candidate)
    before = lowered_text[index - 1] if index > 0 else None
    end = index + len(needle)
    after = lowered_text[end] if end < len(lowered_text) else None
    glued = _is_word_neighbour(before, cls) or _is_word_neighbour(after, cls)
    independence = 0.0 if glued else INDEPENDENCE_BONUS

    total = round(intrinsic + frequency + position + independence, 2)
    return ScoredKeyword(
        keyword=candidate,
        score=total,
        category=categorize(candidate),
        intrinsic=intrinsic,
        frequency=frequency,
        position=position,
        independence=independence,
    )


def score_candidates(text: str) -> List[ScoredKeyword]:
    """Every valid candidate with its score, best first (ties keep text order)."""
    if not text or len(text.strip()) < MIN_TEXT_LENGTH:
        return []

    scored = []
    for candidate in extract_candidates(text):
        if not is_valid_candidate(candidate):
            continue
        result = score_candidate(candidate, text)
        if result is not None:
            scored.append(result)

    return sorted(scored, key=lambda item: -item.score)


def extract_keywords(text: str, limit: int = MAX_RESULTS) -> List[str]:
    """
    Heuristically pick up to ``limit`` (never more than five) search keys from text.

    Only candidates scoring at least SCORE_THRESHOLD survive; every keyword
    returned is a literal, case-insensitive substring of ``text``.
    """
    limit = max(0, min(int(limit), MAX_RESULTS))
    if limit == 0:
        return []
    ranked = [item for item in score_candidates(text) if item.score >= SCORE_THRESHOLD]
    return [item.keyword for item in ranked[:limit]]


__all__ = [
    "MAX_RESULTS",
    "MIN_TEXT_LENGTH",
    "SCORE_THRESHOLD",
    "ScoredKeyword",
    "extract_candidates",
    "extract_keywords",
    "is_valid_candidate",
    "score_candidate",
    "score_candidates",
]
