"""pm_market REST endpoints.

GET /markets                          — list with cursor pagination
GET /markets/{market_id}              — full detail with quoted prices
GET /markets/{market_id}/history      — price snapshots for charting
GET /markets/{market_id}/preview      — trade projection, no side effects
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(
        None, description="Filter by status. Default: ACTIVE. Use ALL for no filter."
    ),
    category: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_markets(db, status, category, cursor, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/history")
async def get_price_history(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(200, ge=1, le=1000),
) -> ApiResponse:
    result = await _service.get_price_history(db, market_id, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/preview")
async def preview_trade(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    # Plain str so an invalid amount or side comes back as {valid: false},
    # not a 422.
    amount: str = Query(..., description="Stake in euros"),
    side: str = Query(..., description="YES or NO"),
) -> ApiResponse:
    result = await _service.preview_trade(db, market_id, amount, side)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
