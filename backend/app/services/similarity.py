"""
String similarity based on Levenshtein edit distance
"""

from rapidfuzz.distance import Levenshtein


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character inserts, deletes and substitutions"""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Case-insensitive similarity in [0, 1]; two empty strings score 1.0"""
    a, b = a.lower(), b.lower()
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein_distance(a, b)) / max_len
