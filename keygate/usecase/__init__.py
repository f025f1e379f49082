"""Usecase layer for application services."""
from keygate.usecase.token_usecase import TokenUsecase

__all__ = [
    "TokenUsecase",
]
