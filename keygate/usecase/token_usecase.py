"""Token usecase for key issuance and redemption."""
import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.common.config import settings
from keygate.common.exceptions import (
    InvalidInputException,
    NotFoundException,
    ServiceUnavailableException,
    InternalServerException,
)
from keygate.domain.schemas import IssuedToken, RedemptionResult, TokenDetail
from keygate.domain.token_service import (
    RedeemStatus,
    generate_token_value,
    normalize_claimant,
    token_display_prefix,
    validate_claimant_input,
    validate_token_input,
)
from keygate.repository.exceptions import (
    DuplicateTokenException,
    DatabaseConnectionException,
    DatabaseOperationException,
)
from keygate.repository.token_repository import TokenRepository

logger = logging.getLogger(__name__)


class TokenUsecase:
    """Usecase for single-use key operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.token_repo = TokenRepository(session)

    async def issue(self, owner_identity: str, scopes: list[str]) -> IssuedToken:
        """Issue a new key.

        Membership gating is the caller's job; by the time this runs the
        requester has already been checked against ``scopes``.

        Args:
            owner_identity: External identity the key is issued to
            scopes: Chat ids the requester was validated against

        Returns:
            IssuedToken with the key value (shown only once)

        Raises:
            ServiceUnavailableException: If the database is unreachable
            InternalServerException: If the key could not be stored
        """
        # Ordered set: keep first occurrence of each scope
        scopes = list(dict.fromkeys(scopes))

        # Retry key generation if a value collision occurs (extremely rare)
        max_retries = settings.max_issue_attempts
        token = None

        for attempt in range(max_retries):
            value = generate_token_value(settings.token_bytes)

            try:
                async with self.session.begin():
                    token = await self.token_repo.create(
                        value=value,
                        owner_identity=owner_identity,
                        scopes=scopes,
                    )
                break
            except DuplicateTokenException:
                logger.warning(f"Key collision on attempt {attempt + 1}/{max_retries}")
                if attempt == max_retries - 1:
                    raise InternalServerException(
                        "Failed to generate unique token after multiple attempts"
                    )
                continue
            except (DatabaseConnectionException, OperationalError) as e:
                logger.error(f"Key issue failed, database unavailable: {e}")
                raise ServiceUnavailableException()
            except DatabaseOperationException as e:
                logger.error(f"Key issue failed: {e.message} ({e.detail})")
                raise InternalServerException("Failed to create token")

        if not token:
            raise InternalServerException("Failed to create token")

        logger.info(
            f"Issued key {token_display_prefix(token.value)} to {owner_identity} "
            f"for scopes {scopes}"
        )
        return IssuedToken(
            token=token.value,
            owner_identity=token.owner_identity,
            scopes=token.scopes,
            created_at=token.created_at,
        )

    async def redeem(self, value: str | None, claimant: str | None = None) -> RedemptionResult:
        """Consume a key exactly once.

        Args:
            value: Key value presented by the caller
            claimant: Machine id recorded on success

        Returns:
            RedemptionResult; unknown and already used keys are results, not errors

        Raises:
            InvalidInputException: If the key is missing or malformed, or the
                machine id is too long
            ServiceUnavailableException: If the database is unreachable
            InternalServerException: If the database operation fails
        """
        problem = validate_token_input(value) or validate_claimant_input(claimant)
        if problem:
            raise InvalidInputException(problem)

        claimant = normalize_claimant(claimant)

        # Not retried: the effect of a failed attempt is unknown
        try:
            async with self.session.begin():
                outcome = await self.token_repo.atomic_redeem(value, claimant)
        except (DatabaseConnectionException, OperationalError) as e:
            logger.error(f"Redeem failed, database unavailable: {e}")
            raise ServiceUnavailableException()
        except DatabaseOperationException as e:
            logger.error(f"Redeem failed: {e.message} ({e.detail})")
            raise InternalServerException("Failed to redeem token")

        logger.info(
            f"Redeem {token_display_prefix(value)} by {claimant or '-'}: {outcome.status.value}"
        )

        if outcome.status is RedeemStatus.REDEEMED:
            return RedemptionResult(valid=True, consumed_at=outcome.consumed_at)
        return RedemptionResult(valid=False, reason=outcome.status.value)

    async def lookup(self, value: str) -> TokenDetail:
        """Get the stored state of a key.

        Raises:
            InvalidInputException: If the key is missing or malformed
            NotFoundException: If no key has this value
        """
        problem = validate_token_input(value)
        if problem:
            raise InvalidInputException(problem)

        async with self.session.begin():
            token = await self.token_repo.get_by_value(value)

        if not token:
            raise NotFoundException("Token not found")

        return TokenDetail.model_validate(token)
