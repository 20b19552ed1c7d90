from typing import Any, Dict

from fastapi import Response

from controllers.responses import error_response
from core.auth.session import SessionClient
from core.cloud.appwrite import CloudContext
from core.models.models import Identity
from core.result import Err, ErrorKind, capture


async def login_url_endpoint(cloud: CloudContext, redirect_uri: str) -> Dict[str, Any]:
    """
    First half of the OAuth2 token flow: the client opens the returned URL and
    the provider sends the browser back to `redirect_uri` with userId/secret.
    """
    result = await capture(
        "Create OAuth2 token",
        cloud.exchange.create_oauth2_token(cloud.settings.oauth_provider, redirect_uri),
    )
    if isinstance(result, Err):
        raise error_response(result, "Login")
    if not result.value:
        raise error_response(Err(ErrorKind.MISSING_TOKEN, "Create OAuth2 token returned no URL"), "Login")

    return {"success": True, "url": str(result.value), "redirect_uri": redirect_uri}


async def login_callback_endpoint(
    cloud: CloudContext,
    sessions: SessionClient,
    callback_url: str,
    response: Response,
) -> Dict[str, Any]:
    result = await sessions.complete_login(callback_url)
    if isinstance(result, Err):
        raise error_response(result, "Login")

    session = result.value
    response.set_cookie(
        key=cloud.settings.session_cookie_name,
        value=session["secret"],
        httponly=True,
        samesite="lax",
    )
    return {"success": True, "message": "Signed in.", "user_id": session.get("userId")}


async def logout_endpoint(cloud: CloudContext, sessions: SessionClient, response: Response) -> Dict[str, Any]:
    result = await sessions.logout_result()
    if isinstance(result, Err):
        raise error_response(result, "Logout")

    response.delete_cookie(cloud.settings.session_cookie_name)
    return {"success": True, "message": "Signed out."}


async def current_user_endpoint(user: Identity) -> Dict[str, Any]:
    return {"success": True, "user": user.to_dict()}
