"""Character-level word similarity."""

DEFAULT_MATCH_THRESHOLD = 0.7


def edit_distance(word1: str, word2: str) -> int:
    """Levenshtein distance with unit insert/delete/substitute cost.

    Walks the ``(len(word2) + 1) x (len(word1) + 1)`` table row by row,
    keeping only the previous and current rows.
    """
    previous = list(range(len(word1) + 1))
    for j in range(1, len(word2) + 1):
        current = [j] + [0] * len(word1)
        for i in range(1, len(word1) + 1):
            cost = 0 if word1[i - 1] == word2[j - 1] else 1
            current[i] = min(
                current[i - 1] + 1,
                previous[i] + 1,
                previous[i - 1] + cost,
            )
        previous = current
    return previous[len(word1)]


def similarity(word1: str, word2: str) -> float:
    """Normalized similarity in [0, 1]. Two empty words are identical."""
    longest = max(len(word1), len(word2))
    if longest == 0:
        return 1.0
    return 1 - edit_distance(word1, word2) / longest


def words_match(word1: str, word2: str, threshold: float = DEFAULT_MATCH_THRESHOLD) -> bool:
    """True when similarity strictly exceeds ``threshold``."""
    return similarity(word1, word2) > threshold
