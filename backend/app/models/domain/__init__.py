"""Domain models for the application."""

from app.models.domain.policy import Policy

__all__ = [
    "Policy",
]
