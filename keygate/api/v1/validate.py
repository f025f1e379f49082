"""Key validation API endpoints.

Two entry points redeem a key with identical semantics:
- POST {base}/validate with body {"token": ..., "machine_id": ...}
- GET  {base}/validate?key=...&mid=...
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.common.database import get_db
from keygate.common.responses import redemption_response
from keygate.domain.schemas import ValidateRequest
from keygate.usecase.token_usecase import TokenUsecase

router = APIRouter()


async def _redeem(session: AsyncSession, token: str | None, machine_id: str | None) -> JSONResponse:
    usecase = TokenUsecase(session)
    result = await usecase.redeem(token, machine_id)
    return redemption_response(result)


@router.post("/validate")
async def validate_body(
    payload: ValidateRequest | None = None,
    session: AsyncSession = Depends(get_db),
):
    """Redeem a key passed in a JSON body.

    Args:
        payload: Body with token and optional machine_id
        session: Database session

    Returns:
        Redemption payload ({"ok": true, "valid": ...})
    """
    payload = payload or ValidateRequest()
    return await _redeem(session, payload.token, payload.machine_id)


@router.get("/validate")
async def validate_query(
    key: str | None = Query(default=None),
    token: str | None = Query(default=None),
    mid: str | None = Query(default=None),
    machine_id: str | None = Query(default=None),
    session: AsyncSession = Depends(get_db),
):
    """Redeem a key passed as a query parameter.

    ``token`` and ``machine_id`` are accepted as aliases of ``key`` and ``mid``.
    """
    return await _redeem(session, key or token, mid or machine_id)
