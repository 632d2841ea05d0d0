"""
Helper utilities for Algo Workspace.

Common functions used across domains.
"""

import os
import re
from datetime import datetime
from typing import List, Optional

# Suffix appended to a slug when an archive/restore destination is taken
COLLISION_SUFFIX_PATTERN = re.compile(r"-\d{8}-\d{6}$")


def generate_timestamp_suffix(now: Optional[datetime] = None) -> str:
    """
    Generate a collision suffix from local time.

    Args:
        now: Moment to format (defaults to the current local time)

    Returns:
        Suffix in ``YYYYMMDD-HHMMSS`` form, without the leading hyphen
    """
    moment = now or datetime.now()
    return moment.strftime("%Y%m%d-%H%M%S")


def strip_collision_suffix(slug: str) -> str:
    """Remove a trailing ``-YYYYMMDD-HHMMSS`` from ``slug`` if present."""
    return COLLISION_SUFFIX_PATTERN.sub("", slug)


def path_segments(path: str) -> List[str]:
    """
    Split a path into lowercase segments.

    Both separators are honoured so Windows-style paths reported by a
    watcher categorize the same way as POSIX ones.
    """
    normalized = path.replace("\\", "/").lower()
    return [segment for segment in normalized.split("/") if segment]


def fspath_or_none(value: object) -> Optional[str]:
    """Return ``os.fspath(value)`` for str/PathLike values, else None."""
    if isinstance(value, (str, os.PathLike)):
        result = os.fspath(value)
        return result if isinstance(result, str) else None
    return None
