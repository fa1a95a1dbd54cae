from .base import BaseRepository
from .policy_repository import PolicyRepository

__all__ = [
    "BaseRepository",
    "PolicyRepository",
]
