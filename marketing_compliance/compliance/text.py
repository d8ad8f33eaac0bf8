"""
Text matching helpers used by the violation detector.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

CONTEXT_WINDOW = 50
MAX_KEYWORDS = 50

STOP_WORDS = frozenset(
    {
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
        "by", "from", "as", "is", "was", "are", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could", "should",
    }
)

# Element fragment -> accepted alternative wordings.
ELEMENT_VARIATIONS: Dict[str, Tuple[str, ...]] = {
    "apr": ("annual percentage rate", "effective interest rate", "yearly interest rate"),
    "processing fee": ("service charge", "handling fee", "administrative fee"),
    "terms and conditions": ("t&c", "terms & conditions", "tnc", "terms of service"),
    "grievance": ("complaint", "customer service", "support", "help"),
}


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """Lowercase whitespace tokens longer than three characters, stop words removed."""
    words = [word for word in text.lower().split() if len(word) > 3 and word not in STOP_WORDS]
    return words[:limit]


def find_text_matches(haystack: str, needle: str) -> List[Tuple[int, int]]:
    """All (start, end) spans of `needle`, overlapping occurrences included."""
    if not needle:
        return []
    spans: List[Tuple[int, int]] = []
    cursor = 0
    while True:
        index = haystack.find(needle, cursor)
        if index == -1:
            break
        spans.append((index, index + len(needle)))
        cursor = index + 1
    return spans


def context_window(text: str, start: int, end: int, window: int = CONTEXT_WINDOW) -> str:
    return text[max(0, start - window):min(len(text), end + window)].strip()


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalised edit similarity in [0, 1]."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein(a, b)) / longer


def match_confidence(phrase: str, matched: str) -> float:
    phrase_l, matched_l = phrase.lower(), matched.lower()
    if phrase_l == matched_l:
        return 1.0
    return max(0.5, similarity(phrase_l, matched_l))


def element_variations(element: str) -> List[str]:
    element = element.lower()
    variations = [element]
    for fragment, alternatives in ELEMENT_VARIATIONS.items():
        if fragment in element:
            variations.extend(alternatives)
    return variations


def is_element_present(normalized_text: str, element: str) -> bool:
    """Substring presence check against the element and its known variations."""
    return any(variation in normalized_text for variation in element_variations(element))


__all__ = [
    "CONTEXT_WINDOW",
    "STOP_WORDS",
    "ELEMENT_VARIATIONS",
    "extract_keywords",
    "find_text_matches",
    "context_window",
    "levenshtein",
    "similarity",
    "match_confidence",
    "element_variations",
    "is_element_present",
]
