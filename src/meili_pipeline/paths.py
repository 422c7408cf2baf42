"""Namespaced path codec.

Paths address a field as ``group.type.field`` and, one level deeper, a
nested field inside a block type as ``group.type.field.blockType.nestedField``.
"""

from typing import Optional

from .models import PathParts

SEPARATOR = "."


def split_path(path: str) -> PathParts:
    """Split a namespaced path into its positional parts.

    Empty segments are discarded before positions are assigned, so
    ``"news..article.title"`` decodes like ``"news.article.title"``.
    Missing positions come back as None; callers treat that as "no match".
    """
    segments = [s.strip() for s in str(path or "").split(SEPARATOR)]
    segments = [s for s in segments if s]

    return PathParts(
        group=segments[0] if len(segments) > 0 else None,
        type=segments[1] if len(segments) > 1 else None,
        field=segments[2] if len(segments) > 2 else None,
        rest=segments[3:],
    )


def join_path(*segments: Optional[str]) -> str:
    return SEPARATOR.join(str(s) for s in segments if s)


def leaf(path: str) -> str:
    """Text after the last separator, or the whole string."""
    return path.rsplit(SEPARATOR, 1)[-1]


def dot_count(path: str) -> int:
    return path.count(SEPARATOR)
