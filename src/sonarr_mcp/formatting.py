"""Shared reshaping helpers for tool and resource output."""

import math
import re
from datetime import datetime, timezone
from typing import Optional, Union

BYTES_PER_GB = 1024 ** 3


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up."""
    return int(math.floor(value + 0.5))


def bytes_to_gb(size: Optional[float]) -> float:
    """Convert bytes to GB (1024^3), 2 decimal places."""
    return round((size or 0) / BYTES_PER_GB, 2)


def percent_free(free: Optional[float], total: Optional[float]) -> int:
    if not total:
        return 0
    return round_half_up((free or 0) / total * 100)


def download_progress(size: Optional[float], size_left: Optional[float], unknown="Unknown") -> Union[int, str]:
    """Percent complete of a queue item, or `unknown` when size is 0."""
    if not size:
        return unknown
    return round_half_up((1 - (size_left or 0) / size) * 100)


def episode_code(season: Optional[int], episode: Optional[int]) -> str:
    return f"S{season or 0:02d}E{episode or 0:02d}"


def truncate(text: Optional[str], limit: int = 200) -> Optional[str]:
    if text is None or len(text) <= limit:
        return text
    return text[:limit] + "..."


_FRACTION = re.compile(r"\.(\d{6})\d+")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Sonarr ISO timestamp (7-digit fractions, trailing Z) as UTC."""
    if not value:
        return None
    text = _FRACTION.sub(r".\1", value.replace("Z", "+00:00"))
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
