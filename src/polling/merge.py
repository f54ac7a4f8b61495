"""Merge helpers for cumulative panels."""

from collections.abc import Callable, Hashable, Iterable


def merge_by_key[T](
    new: Iterable[T],
    previous: Iterable[T] | None,
    key: Callable[[T], Hashable],
    limit: int | None = None,
) -> list[T]:
    """Prepend new entries to previous ones, dropping repeated keys.

    The first occurrence of a key wins, so a fresh entry replaces a stale
    copy of the same item. Merging the same data twice leaves the result
    unchanged.

    Args:
        new: Latest entries, most recent first
        previous: Currently displayed entries
        key: Identity of an entry (hash, event id, address)
        limit: Maximum length of the result

    Returns:
        list[T]: Merged entries, most recent first

    Example:
        >>> merge_by_key([3, 2], [2, 1], key=lambda n: n, limit=3)
        [3, 2, 1]
    """
    seen: set[Hashable] = set()
    merged: list[T] = []
    if limit is not None and limit <= 0:
        return merged

    for item in (*new, *(previous or ())):
        identity = key(item)
        if identity in seen:
            continue
        seen.add(identity)
        merged.append(item)
        if limit is not None and len(merged) >= limit:
            break
    return merged


__all__ = ["merge_by_key"]
