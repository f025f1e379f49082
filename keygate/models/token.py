"""Token model."""
import enum

from sqlalchemy import Column, String, DateTime, JSON, CheckConstraint, Uuid, text
from uuid6 import uuid7

from keygate.common.database import Base


class TokenState(str, enum.Enum):
    """Redemption state of a key. USED is terminal."""

    UNUSED = "UNUSED"
    USED = "USED"


class Token(Base):
    """Single-use key issued by the bot and consumed by a validate call."""
    __tablename__ = "tokens"
    __table_args__ = (
        CheckConstraint("state IN ('UNUSED', 'USED')", name="ck_tokens_state"),
        # consumed_* columns are only ever written together with state=USED
        CheckConstraint(
            "(state = 'UNUSED' AND consumed_at IS NULL AND consumed_by IS NULL)"
            " OR (state = 'USED' AND consumed_at IS NOT NULL)",
            name="ck_tokens_consumed",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid7)
    value = Column(String(128), nullable=False, unique=True, index=True)
    owner_identity = Column(String(64), nullable=False, index=True)  # e.g. Telegram user id
    scopes = Column(JSON, nullable=False, default=list)  # chat ids checked at issuance
    state = Column(String(10), nullable=False, default=TokenState.UNUSED.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    consumed_by = Column(String(255), nullable=True)  # machine id of the claimant
    consumed_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_used(self) -> bool:
        return self.state == TokenState.USED.value

    def __repr__(self):
        return f"<Token(id={self.id}, prefix={self.value[:8]}, state={self.state})>"
