import asyncio
import logging
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional, Protocol
from urllib.parse import urljoin, urlsplit

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

SUCCESS = "success"
CANCEL = "cancel"
DISMISS = "dismiss"

CLOSE_PAGE = (
    b"<!doctype html><html><body>"
    b"<p>Sign-in complete. You can close this window.</p>"
    b"</body></html>"
)


@dataclass(frozen=True)
class BrowserResult:
    type: str
    url: Optional[str] = None


class AuthSurface(Protocol):
    def create_redirect_uri(self, path: str = "/") -> str:
        ...

    async def open_auth_session(self, url: str, redirect_uri: str) -> BrowserResult:
        ...


class LoopbackAuthSurface:
    """
    Opens the provider page in the system browser and waits on a loopback
    listener for the redirect. Closing the browser without finishing shows
    up as a timeout and is reported as a cancel.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8765,
        timeout: float = 300.0,
        opener: Callable[[str], bool] = webbrowser.open,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.opener = opener

    def create_redirect_uri(self, path: str = "/") -> str:
        return f"http://{self.host}:{self.port}{path}"

    async def open_auth_session(self, url: str, redirect_uri: str) -> BrowserResult:
        loop = asyncio.get_running_loop()
        redirected = loop.create_future()
        expected_path = urlsplit(redirect_uri).path or "/"

        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
            try:
                request_line = await reader.readline()
                # Headers are not needed, only drained
                while True:
                    line = await reader.readline()
                    if line in (b"\r\n", b"\n", b""):
                        break

                parts = request_line.decode("latin-1").split()
                target = parts[1] if len(parts) >= 2 else "/"

                if urlsplit(target).path != expected_path:
                    writer.write(b"HTTP/1.1 404 Not Found\r\nContent-Length: 0\r\nConnection: close\r\n\r\n")
                    await writer.drain()
                    return

                writer.write(
                    b"HTTP/1.1 200 OK\r\n"
                    b"Content-Type: text/html; charset=utf-8\r\n"
                    + f"Content-Length: {len(CLOSE_PAGE)}\r\n".encode("ascii")
                    + b"Connection: close\r\n\r\n"
                    + CLOSE_PAGE
                )
                await writer.drain()
                if not redirected.done():
                    redirected.set_result(urljoin(redirect_uri, target))
            finally:
                writer.close()

        server = await asyncio.start_server(handle, self.host, self.port)
        async with server:
            opened = await run_in_threadpool(self.opener, url)
            if not opened:
                logger.warning("Could not open a browser for the sign-in page")
                return BrowserResult(DISMISS)

            try:
                final_url = await asyncio.wait_for(redirected, self.timeout)
            except asyncio.TimeoutError:
                logger.info("Sign-in was not completed within %s seconds", self.timeout)
                return BrowserResult(CANCEL)

        return BrowserResult(SUCCESS, final_url)
