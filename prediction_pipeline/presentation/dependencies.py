"""
Presentation Layer - Request Dependencies

Shared-secret check for scheduler endpoints and the caller identity supplied
by the upstream authentication layer.
"""

import secrets
from typing import Optional

import structlog
from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Header, HTTPException, status

from prediction_pipeline.main.container import AppContainer

logger = structlog.get_logger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@inject
async def verify_cron_secret(
    authorization: Optional[str] = Header(default=None),
    x_cron_secret: Optional[str] = Header(default=None, alias="x-cron-secret"),
    cron_secret: str = Depends(Provide[AppContainer.config.security.cron_secret]),
) -> None:
    """Accept ``Authorization: Bearer <secret>`` or an ``x-cron-secret`` header."""
    if not cron_secret:
        logger.error("auth.cron_secret.not_configured")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )

    candidates = [_bearer_token(authorization), x_cron_secret]
    for candidate in candidates:
        if candidate and secrets.compare_digest(
            candidate.encode(), cron_secret.encode()
        ):
            return

    logger.warning("auth.cron_secret.rejected")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def require_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """Identity of the caller as resolved by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
    return x_user_id.strip()
