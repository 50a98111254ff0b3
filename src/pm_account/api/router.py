"""pm_account REST API.

GET /users/leaderboard   — top balances
GET /users/{email}       — balance (creates the user on first sight)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.service import AccountApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response

router = APIRouter(prefix="/users", tags=["users"])

_service = AccountApplicationService()


@router.get("/leaderboard")
async def get_leaderboard(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.get_leaderboard(db, limit)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{email}")
async def get_user(
    email: EmailStr,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.get_or_create_user(db, email)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
