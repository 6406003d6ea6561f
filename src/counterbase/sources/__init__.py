"""Source getters, selected by direction source URL scheme."""

from counterbase.sources.registry import available_schemes, build_getters, get_getter

__all__ = ["available_schemes", "build_getters", "get_getter"]
