"""Internal utilities: source positions, the LRU template cache, constants."""

from formatr.utils.lru_cache import CacheInfo, TemplateCache
from formatr.utils.position import LineIndex, Position, Range, offset_to_position

__all__ = [
    "CacheInfo",
    "LineIndex",
    "Position",
    "Range",
    "TemplateCache",
    "offset_to_position",
]
