import asyncio
import socket
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from latchkey.auth.client.models.discovery import AuthorizationServerMetadata

METADATA = {
    "issuer": "https://mcp.example.com",
    "authorization_endpoint": "https://mcp.example.com/authorize",
    "token_endpoint": "https://mcp.example.com/token",
    "registration_endpoint": "https://mcp.example.com/register",
}


class RedirectingBrowser:
    """Browser double that follows the authorization URL straight to the callback.

    Like a real browser launch, ``open`` returns at once; the redirects are
    sent from the background task kept as ``redirects``.

    Each entry in ``callbacks`` is a (code, state) pair; a state of None
    means "echo the state from the authorization URL".
    """

    def __init__(self, callbacks: list[tuple[str, str | None]]):
        self.callbacks = callbacks
        self.opened_urls: list[str] = []
        self.responses: list[httpx.Response] = []
        self.redirects: asyncio.Task | None = None

    async def open(self, url: str) -> bool:
        self.opened_urls.append(url)
        self.redirects = asyncio.create_task(self._follow(url))
        return True

    async def _follow(self, url: str) -> None:
        query = parse_qs(urlparse(url).query)
        redirect_uri = query["redirect_uri"][0]
        async with httpx.AsyncClient(trust_env=False) as client:
            for code, state in self.callbacks:
                response = await client.get(
                    redirect_uri,
                    params={"code": code, "state": state or query["state"][0]},
                )
                self.responses.append(response)


class ClosedBrowser:
    """Browser double that cannot open anything."""

    def __init__(self):
        self.opened_urls: list[str] = []

    async def open(self, url: str) -> bool:
        self.opened_urls.append(url)
        return False


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def metadata() -> AuthorizationServerMetadata:
    return AuthorizationServerMetadata.model_validate(METADATA)


@pytest.fixture
def metadata_document() -> dict:
    return dict(METADATA)


@pytest.fixture
def redirecting_browser():
    return RedirectingBrowser


@pytest.fixture
def closed_browser() -> ClosedBrowser:
    return ClosedBrowser()
