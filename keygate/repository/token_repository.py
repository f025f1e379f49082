"""Token repository for database operations."""
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError

from keygate.domain.token_service import RedeemOutcome
from keygate.models.token import Token, TokenState
from .exceptions import (
    DuplicateTokenException,
    DatabaseConnectionException,
    DatabaseOperationException,
)


class TokenRepository:
    """Repository for Token model operations.

    Methods expect to run inside a transaction opened by the caller.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        value: str,
        owner_identity: str,
        scopes: list[str],
    ) -> Token:
        """Create a new unused token.

        Args:
            value: Generated key value
            owner_identity: External identity the key is issued to
            scopes: Chat ids the issuance was validated against

        Returns:
            Created Token object

        Raises:
            DuplicateTokenException: If the value already exists
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        try:
            token = Token(
                value=value,
                owner_identity=owner_identity,
                scopes=scopes,
                state=TokenState.UNUSED.value,
                created_at=datetime.now(timezone.utc),
            )
            self.session.add(token)
            await self.session.flush()
            await self.session.refresh(token)
            return token
        except IntegrityError as e:
            error_msg = str(e.orig).lower()
            if "unique" in error_msg and "value" in error_msg:
                raise DuplicateTokenException("Token value collision detected")
            raise DatabaseOperationException("Failed to create token", detail=str(e.orig))
        except OperationalError as e:
            raise DatabaseConnectionException(detail=str(e.orig))
        except DBAPIError as e:
            raise DatabaseOperationException(detail=str(e.orig))

    async def get_by_value(self, value: str) -> Token | None:
        """Get token by its key value.

        Args:
            value: Key value

        Returns:
            Token object if found, None otherwise
        """
        # atomic_redeem bypasses the identity map, so always reload the row
        result = await self.session.execute(
            select(Token)
            .where(Token.value == value)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def atomic_redeem(self, value: str, claimant: str | None) -> RedeemOutcome:
        """Mark a token USED if and only if it is still UNUSED.

        The transition is one conditional UPDATE; the affected row count
        decides the winner, so concurrent callers can never both succeed.
        A zero count is followed by an existence check to tell an unknown
        value from one that is already used.

        Args:
            value: Key value
            claimant: Machine id recorded as consumed_by (may be None)

        Returns:
            RedeemOutcome (REDEEMED, NOT_FOUND or ALREADY_USED)

        Raises:
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        now = datetime.now(timezone.utc)
        try:
            result = await self.session.execute(
                update(Token)
                .where(
                    Token.value == value,
                    Token.state == TokenState.UNUSED.value,
                )
                .values(
                    state=TokenState.USED.value,
                    consumed_by=claimant,
                    consumed_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return RedeemOutcome.redeemed(now)

            exists = await self.session.execute(
                select(Token.id).where(Token.value == value)
            )
            if exists.scalar_one_or_none() is None:
                return RedeemOutcome.not_found()
            return RedeemOutcome.already_used()
        except OperationalError as e:
            raise DatabaseConnectionException(detail=str(e.orig))
        except DBAPIError as e:
            raise DatabaseOperationException(detail=str(e.orig))
