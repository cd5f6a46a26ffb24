"""Prefix similarity between a new query and a previously answered one.

A user typing "Coffee S" after "Coffee" has already been answered is most
likely still refining the same search, so the cached "Coffee" results are
reused. Stored queries shorter than ``min_stored_length`` would match too many
unrelated queries, and refinements more than ``max_extra_chars`` longer are
treated as a different search.
"""

DEFAULT_MIN_STORED_LENGTH = 3
DEFAULT_MAX_EXTRA_CHARS = 3


def is_similar(
    candidate_query: str,
    stored_query: str,
    min_stored_length: int = DEFAULT_MIN_STORED_LENGTH,
    max_extra_chars: int = DEFAULT_MAX_EXTRA_CHARS,
) -> bool:
    """Check whether ``candidate_query`` refines ``stored_query``.

    Case-insensitive and directional: a candidate shorter than the stored
    query never matches.

    Args:
        candidate_query: The incoming query.
        stored_query: The query component of a cached key.
        min_stored_length: Minimum length of the stored query.
        max_extra_chars: Maximum characters the candidate may add.

    Returns:
        True if the cached results for ``stored_query`` may answer ``candidate_query``.
    """
    candidate = candidate_query.lower()
    stored = stored_query.lower()

    if len(stored) < min_stored_length:
        return False
    if not candidate.startswith(stored):
        return False
    return len(candidate) - len(stored) <= max_extra_chars
