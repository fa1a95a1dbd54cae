from .redis_cache import PolicyCache

__all__ = [
    "PolicyCache",
]
