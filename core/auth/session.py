import logging
from typing import Optional

from pydantic import ValidationError

from core.auth.browser import SUCCESS, AuthSurface
from core.auth.callback import parse_callback_url
from core.cloud.appwrite import initials_avatar_url
from core.config.settings import AppwriteSettings
from core.models.models import Identity
from core.result import Err, ErrorKind, Ok, Result, capture

logger = logging.getLogger(__name__)

CURRENT_SESSION = "current"


class SessionClient:
    """
    Signs the user in through the provider's OAuth2 token flow and resolves
    who is signed in. The `*_result` methods report why something failed;
    the plain methods collapse any failure to False/None and never raise.

    `identity` acts as the user. `exchange` creates the OAuth2 token and
    trades it for a session; Appwrite only reveals the session secret to a
    key-authenticated caller, so it defaults to `identity` only when no
    separate admin service exists.
    """

    def __init__(self, identity, surface: Optional[AuthSurface], settings: AppwriteSettings, exchange=None):
        self.identity = identity
        self.surface = surface
        self.settings = settings
        self.exchange = exchange or identity

    async def login_result(self) -> Result:
        if self.surface is None:
            return Err(ErrorKind.CANCELLED, "No interactive auth surface is available")

        redirect_uri = self.surface.create_redirect_uri("/")

        token = await capture(
            "Create OAuth2 token",
            self.exchange.create_oauth2_token(self.settings.oauth_provider, redirect_uri),
        )
        if isinstance(token, Err):
            return token
        if not token.value:
            return Err(ErrorKind.MISSING_TOKEN, "Create OAuth2 token returned no URL")

        browser = await capture(
            "Open auth session",
            self.surface.open_auth_session(str(token.value), redirect_uri),
        )
        if isinstance(browser, Err):
            return browser
        if browser.value.type != SUCCESS:
            return Err(ErrorKind.CANCELLED, f"Auth session ended with '{browser.value.type}'")

        return await self.complete_login(browser.value.url)

    async def complete_login(self, callback_url: str) -> Result:
        """Exchanges the `userId`/`secret` pair in the callback URL for a session."""
        callback = parse_callback_url(callback_url)
        if isinstance(callback, Err):
            return callback

        session = await capture(
            "Create session",
            self.exchange.create_session(callback.value.user_id, callback.value.secret),
        )
        if isinstance(session, Err):
            return session
        if not session.value:
            return Err(ErrorKind.TRANSPORT, "Failed to create session")

        credential = session.value.get("secret")
        if not credential:
            # The token secret is single-use and already spent by create_session
            return Err(ErrorKind.TRANSPORT, "Session secret missing; is APPWRITE_API_KEY set?")

        self.identity.use_session(credential)
        return Ok(session.value)

    async def login(self) -> bool:
        result = await self.login_result()
        if isinstance(result, Err):
            logger.error("Login failed (%s): %s", result.kind.value, result.message)
            return False
        return True

    async def logout_result(self) -> Result:
        result = await capture("Delete session", self.identity.delete_session(CURRENT_SESSION))
        if isinstance(result, Ok):
            self.identity.use_session(None)
        return result

    async def logout(self) -> bool:
        return isinstance(await self.logout_result(), Ok)

    async def current_user_result(self) -> Result:
        result = await capture("Get current user", self.identity.get())
        if isinstance(result, Err):
            return result

        account = result.value or {}
        if not account.get("$id"):
            return Err(ErrorKind.NOT_FOUND, "No signed-in user")

        try:
            user = Identity.model_validate(account)
        except ValidationError as e:
            return Err.from_exception(e)

        user.avatar = initials_avatar_url(self.settings, user.name)
        return Ok(user)

    async def get_current_user(self) -> Optional[Identity]:
        result = await self.current_user_result()
        return result.value if isinstance(result, Ok) else None
