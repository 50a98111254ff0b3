"""Admin REST API — every route requires X-Admin-Key.

POST /admin/markets                       — create a market
POST /admin/markets/{market_id}/close     — stop trading early
POST /admin/markets/{market_id}/resolve   — manual resolution
GET  /admin/markets/{market_id}/stats     — trading stats
POST /admin/resolution-scan               — resolve expired markets via oracles
GET  /admin/invariants                    — pool and ledger consistency audit
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.schemas import CreateMarketRequest, ResolveRequest
from src.pm_admin.application.service import AdminService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_admin_key

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)]
)
_service = AdminService()


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/markets", status_code=201)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_market(db, body)
    return _respond(request, result.model_dump())


@router.post("/markets/{market_id}/close")
async def close_market(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.close_market(db, market_id)
    return _respond(request, result.model_dump())


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_market(db, market_id, body.outcome, body.source)
    return _respond(request, result.model_dump())


@router.get("/markets/{market_id}/stats")
async def market_stats(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market_stats(db, market_id)
    return _respond(request, result.model_dump())


@router.post("/resolution-scan")
async def resolution_scan(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.run_resolution_scan(db)
    return _respond(request, result.model_dump())


@router.get("/invariants")
async def invariants(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.verify_all_invariants(db)
    return _respond(request, result.model_dump())
