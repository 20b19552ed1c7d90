# dependencies/auth.py

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from core.auth.session import SessionClient
from core.cloud.appwrite import CloudContext, create_cloud
from core.config.settings import AppwriteSettings, ConfigurationError, get_settings
from core.models.models import Identity
from core.result import Err, ErrorKind

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Appwrite-Session"


def get_app_settings() -> AppwriteSettings:
    """Pre-flight configuration check shared by every route that talks to Appwrite."""
    try:
        return get_settings()
    except ConfigurationError as e:
        logger.critical("CRITICAL CONFIG ERROR: Missing variables: %s", ", ".join(e.missing))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "success": False,
                "message": f"Server Configuration Error: {e}",
                "missing": e.missing,
            },
        )


def get_session_secret(request: Request, settings: AppwriteSettings = Depends(get_app_settings)) -> Optional[str]:
    """
    Reads the Appwrite session from the `a_session_<project>` cookie, or from
    the X-Appwrite-Session header for clients that cannot keep cookies.
    """
    return request.cookies.get(settings.session_cookie_name) or request.headers.get(SESSION_HEADER)


def get_cloud(
    settings: AppwriteSettings = Depends(get_app_settings),
    session: Optional[str] = Depends(get_session_secret),
) -> CloudContext:
    """A cloud context scoped to the caller's session, built per request."""
    return create_cloud(settings, session=session)


def get_session_client(cloud: CloudContext = Depends(get_cloud)) -> SessionClient:
    # Server-side requests never drive a browser; the redirect is handled by /auth/callback
    return SessionClient(cloud.identity, None, cloud.settings, exchange=cloud.exchange)


async def get_appwrite_user(sessions: SessionClient = Depends(get_session_client)) -> Identity:
    """Resolves the signed-in user or rejects the request with 401."""
    result = await sessions.current_user_result()

    if isinstance(result, Err):
        if result.kind == ErrorKind.NOT_FOUND or (result.code and result.code < 500):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Authentication failed: {result.message}",
            )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Server authentication error: {result.message}",
        )

    return result.value
