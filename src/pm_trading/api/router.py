"""pm_trading REST endpoints.

POST /trades                   — buy shares of one side
GET  /trades                   — a user's positions (?email=&status=)
POST /trades/{trade_id}/sell   — sell an OPEN position back to the pool
GET  /trades/{trade_id}/quote  — what selling would pay right now
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_trading.application.schemas import ExecuteTradeRequest, SellRequest
from src.pm_trading.application.service import TradingService

router = APIRouter(prefix="/trades", tags=["trades"])

_service = TradingService()


@router.post("", status_code=201)
async def execute_trade(
    body: ExecuteTradeRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.execute_trade(
        db, body.email, body.market_id, body.side, body.amount
    )
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_trades(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    email: EmailStr = Query(...),
    status: str | None = Query(None, pattern="^(OPEN|SOLD|WON|LOST)$"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await _service.list_user_trades(db, email, status, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{trade_id}/sell")
async def sell_trade(
    trade_id: str,
    body: SellRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.sell_trade(db, trade_id, body.email)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{trade_id}/quote")
async def quote_sell(
    trade_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    email: EmailStr = Query(...),
) -> ApiResponse:
    result = await _service.quote_sell_trade(db, trade_id, email)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
