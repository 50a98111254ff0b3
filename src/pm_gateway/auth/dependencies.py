"""FastAPI dependency: require_admin_key.

Usage in any admin router:
    from src.pm_gateway.auth.dependencies import require_admin_key

    router = APIRouter(dependencies=[Depends(require_admin_key)])
"""

import hmac

from fastapi import Header

from config.settings import settings
from src.pm_common.errors import AdminKeyRequiredError


async def require_admin_key(
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> None:
    """Reject the request with 403 unless X-Admin-Key matches ADMIN_API_KEY."""
    if not x_admin_key or not hmac.compare_digest(
        x_admin_key.encode(), settings.ADMIN_API_KEY.encode()
    ):
        raise AdminKeyRequiredError()
