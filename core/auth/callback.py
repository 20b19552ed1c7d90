from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from core.result import Err, ErrorKind, Ok, Result


@dataclass(frozen=True)
class OAuthCallback:
    user_id: str
    secret: str


def parse_callback_url(url: str) -> Result:
    """
    Pulls `userId` and `secret` out of the final OAuth redirect URL.
    Both are required; an absent or empty value is reported by name.
    """
    params = parse_qs(urlsplit(url or "").query)
    user_id = params.get("userId", [""])[0]
    secret = params.get("secret", [""])[0]

    missing = [name for name, value in (("userId", user_id), ("secret", secret)) if not value]
    if missing:
        return Err(ErrorKind.MISSING_PARAMS, f"Callback URL is missing: {', '.join(missing)}")

    return Ok(OAuthCallback(user_id=user_id, secret=secret))
