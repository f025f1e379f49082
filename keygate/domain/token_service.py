"""Key generation and input validation service."""
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


# Key configuration
MIN_TOKEN_BYTES = 24
MAX_TOKEN_LENGTH = 128  # Matches the tokens.value column
MAX_CLAIMANT_LENGTH = 255  # Matches the tokens.consumed_by column
TOKEN_DISPLAY_PREFIX_LENGTH = 8


class RedeemStatus(str, Enum):
    """What a conditional redemption write reported."""

    REDEEMED = "redeemed"
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"


@dataclass(frozen=True)
class RedeemOutcome:
    """Result of ``TokenRepository.atomic_redeem``.

    ``consumed_at`` is set only for REDEEMED.
    """

    status: RedeemStatus
    consumed_at: datetime | None = None

    @classmethod
    def redeemed(cls, consumed_at: datetime) -> "RedeemOutcome":
        return cls(RedeemStatus.REDEEMED, consumed_at)

    @classmethod
    def not_found(cls) -> "RedeemOutcome":
        return cls(RedeemStatus.NOT_FOUND)

    @classmethod
    def already_used(cls) -> "RedeemOutcome":
        return cls(RedeemStatus.ALREADY_USED)


def generate_token_value(nbytes: int = MIN_TOKEN_BYTES) -> str:
    """Generate a new key value.

    Format: lowercase hex of ``nbytes`` random bytes (48 characters by default).

    Args:
        nbytes: Bytes of entropy, at least MIN_TOKEN_BYTES

    Returns:
        The key string

    Raises:
        ValueError: If nbytes is below MIN_TOKEN_BYTES
    """
    if nbytes < MIN_TOKEN_BYTES:
        raise ValueError(f"Keys need at least {MIN_TOKEN_BYTES} bytes of entropy")
    return secrets.token_hex(nbytes)


def token_display_prefix(value: str) -> str:
    """Short, non-secret form of a key for log lines."""
    return value[:TOKEN_DISPLAY_PREFIX_LENGTH] + "..."


def validate_token_input(value: str | None) -> str | None:
    """Check a key supplied by a caller.

    Returns:
        None if the value is acceptable, otherwise the reason it is not
    """
    if value is None or not value.strip():
        return "no token"
    if len(value) > MAX_TOKEN_LENGTH:
        return "token too long"
    return None


def validate_claimant_input(claimant: str | None) -> str | None:
    """Check a machine id supplied by a caller.

    Returns:
        None if the value is acceptable, otherwise the reason it is not
    """
    if claimant is not None and len(claimant) > MAX_CLAIMANT_LENGTH:
        return "machine_id too long"
    return None


def normalize_claimant(claimant: str | None) -> str | None:
    """Blank claimants are stored as NULL."""
    if claimant is None or not claimant.strip():
        return None
    return claimant
