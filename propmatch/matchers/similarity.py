from typing import Optional

from rapidfuzz.distance import Levenshtein


def calculate_string_similarity(a: Optional[str], b: Optional[str]) -> int:
    """
    Edit-distance similarity between two already-normalized strings.

    Args:
        a (str): First string.
        b (str): Second string.

    Returns:
        int: 0-100, where 100 means identical. Returns 0 if either side is
             empty, so two missing fields never look like a perfect match.
    """
    if not a or not b:
        return 0
    max_len = max(len(a), len(b))
    distance = Levenshtein.distance(a, b)
    return round((max_len - distance) / max_len * 100)
