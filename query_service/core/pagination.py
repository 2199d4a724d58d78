from typing import List, Sequence, TypeVar

T = TypeVar("T")


def paginate(rows: Sequence[T], limit: int = 0, offset: int = 0) -> List[T]:
    """
    Apply offset, then limit, to a row sequence.

    limit == 0 means no limit. An offset past the end gives an empty list.
    """
    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must not be negative")

    if offset > 0:
        if offset >= len(rows):
            return []
        rows = rows[offset:]

    if limit > 0 and limit < len(rows):
        rows = rows[:limit]

    return list(rows)
