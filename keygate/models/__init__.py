"""Database models."""
from keygate.models.token import Token, TokenState

__all__ = [
    "Token",
    "TokenState",
]
