from .parse_cache import ParseCache, get_parse_cache, invalidate_cached_file

__all__ = ["ParseCache", "get_parse_cache", "invalidate_cached_file"]
