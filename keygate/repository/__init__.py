"""Repository layer for database operations."""
from keygate.repository.token_repository import TokenRepository

__all__ = [
    "TokenRepository",
]
