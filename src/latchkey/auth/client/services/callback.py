"""Local callback listener for the OAuth authorization redirect.

A short-lived loopback HTTP server with a single route. It validates the
redirect's ``state`` and hands the authorization code to the waiting flow
through a one-shot completion slot.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import socket
from urllib.parse import urlparse

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse
from starlette.routing import Route

from latchkey.auth.client.models.errors import CallbackListenerError
from latchkey.auth.client.models.flow import CallbackOutcome
from latchkey.auth.client.primitives.completion import OneShotCompletion

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
DEFAULT_CALLBACK_PORT = 8020

PAGES: dict[CallbackOutcome, tuple[int, str]] = {
    CallbackOutcome.SUCCESS: (
        200,
        "<h2>Authentication Successful!</h2>"
        "<p>You can close this window and return to the application.</p>",
    ),
    CallbackOutcome.MISSING_PARAMETERS: (
        400,
        "<h2>Error</h2><p>Authentication failed - missing parameters.</p>",
    ),
    CallbackOutcome.STATE_MISMATCH: (
        400,
        "<h2>Error</h2><p>State mismatch - possible security issue.</p>",
    ),
    CallbackOutcome.ALREADY_COMPLETED: (
        409,
        "<h2>Error</h2><p>Authentication already completed.</p>",
    ),
}


def states_match(expected: str, received: str) -> bool:
    """Compare state values byte-for-byte in constant time."""
    return secrets.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


class CallbackListener:
    """Loopback HTTP endpoint that receives the authorization redirect.

    Bound to ``127.0.0.1`` on the redirect URI's port and serving only the
    redirect URI's path. Use as an async context manager so the server is
    stopped on every exit path.
    """

    def __init__(
        self,
        redirect_uri: str,
        expected_state: str,
        completion: OneShotCompletion[str],
    ):
        parsed = urlparse(redirect_uri)
        self.redirect_uri = redirect_uri
        self.path = parsed.path or "/"
        self._requested_port = parsed.port or DEFAULT_CALLBACK_PORT
        self._expected_state = expected_state
        self._completion = completion

        self.app = Starlette(
            routes=[Route(self.path, self._handle_callback, methods=["GET"])]
        )
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task | None = None
        self._socket: socket.socket | None = None

    @property
    def port(self) -> int:
        """Port the listener is (or will be) bound to."""
        if self._socket is not None:
            return self._socket.getsockname()[1]
        return self._requested_port

    @property
    def is_serving(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    async def start(self) -> None:
        """Bind the loopback socket and start serving in a background task.

        Raises:
            CallbackListenerError: If the port cannot be bound
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((LOOPBACK_HOST, self._requested_port))
        except OSError as e:
            sock.close()
            raise CallbackListenerError(self._requested_port, str(e)) from e
        self._socket = sock

        config = uvicorn.Config(
            app=self.app, lifespan="off", log_level="warning", access_log=False
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))

        try:
            while not self._server.started:
                if self._serve_task.done():
                    # Surface the startup failure
                    self._serve_task.result()
                    raise RuntimeError("Callback listener exited during startup")
                await asyncio.sleep(0.01)
        except BaseException:
            await self.stop()
            raise

        logger.info(
            f"Callback listener started on "
            f"http://{LOOPBACK_HOST}:{self.port}{self.path}"
        )

    async def stop(self) -> None:
        """Stop the server and release the socket. Safe to call repeatedly."""
        if self._server is not None:
            self._server.should_exit = True
        try:
            if self._serve_task is not None:
                await self._serve_task
                logger.info("Callback listener stopped")
        finally:
            self._serve_task = None
            self._server = None
            if self._socket is not None:
                self._socket.close()
                self._socket = None

    async def __aenter__(self) -> CallbackListener:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def handle_callback_params(
        self, code: str | None, state: str | None
    ) -> CallbackOutcome:
        """Validate one redirect and deliver its code if it is the first valid one."""
        if not code or state is None:
            return CallbackOutcome.MISSING_PARAMETERS

        if not states_match(self._expected_state, state):
            logger.warning("Callback state mismatch - ignoring redirect")
            return CallbackOutcome.STATE_MISMATCH

        if not await self._completion.deliver(code):
            logger.warning("Callback received after authentication already completed")
            return CallbackOutcome.ALREADY_COMPLETED

        logger.info("Authorization code received on callback")
        return CallbackOutcome.SUCCESS

    async def _handle_callback(self, request: Request) -> HTMLResponse:
        params = request.query_params
        error = params.get("error")
        if error:
            logger.warning(
                f"Authorization server returned error: {error} - "
                f"{params.get('error_description', 'No description provided')}"
            )

        outcome = await self.handle_callback_params(
            params.get("code"), params.get("state")
        )
        status_code, page = PAGES[outcome]
        return HTMLResponse(page, status_code=status_code)
