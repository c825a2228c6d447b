"""
Bearer token guard for operator routes.

Authentication proper is the host application's concern. When an API token
is configured the monitoring routes require it; otherwise callers that reach
the router are trusted.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pulse_monitor.core.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def require_operator(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """FastAPI dependency enforcing the configured API token."""

    settings = request.app.state.settings
    expected = settings.get_secret_value(settings.security.api_token)
    if not expected:
        return

    supplied = credentials.credentials if credentials else ""
    if not secrets.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("Rejected monitoring API call",
                       path=request.url.path,
                       client=request.client.host if request.client else None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
