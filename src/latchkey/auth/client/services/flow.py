"""OAuth 2.1 authorization flow orchestration service.

Drives one authorization code attempt: builds the PKCE-protected
authorization URL, runs the loopback callback listener while the user
authorizes in the browser, and exchanges the delivered code for tokens.
"""

from __future__ import annotations

import asyncio
import logging

from latchkey.auth.client.models.errors import AuthorizationTimeoutError
from latchkey.auth.client.models.flow import (
    AuthorizationRequest,
    FlowPhase,
    FlowState,
)
from latchkey.auth.client.models.tokens import TokenData, TokenRequest
from latchkey.auth.client.primitives.completion import OneShotCompletion
from latchkey.auth.client.primitives.pkce import PKCEManager
from latchkey.auth.client.services.browser import BrowserLauncher, SystemBrowserLauncher
from latchkey.auth.client.services.callback import CallbackListener
from latchkey.auth.client.services.tokens import OAuth2TokenManager

logger = logging.getLogger(__name__)

DEFAULT_CALLBACK_TIMEOUT = 120.0


class AuthorizationFlow:
    """One authorization code attempt with PKCE.

    Phases run ``CREATED -> LISTENING -> (CODE_RECEIVED | TIMED_OUT) ->
    EXCHANGED | FAILED``. Every attempt that does not reach ``EXCHANGED`` ends
    in ``FAILED``, including a timeout. ``history`` lists the phases visited.
    An instance is good for a single :meth:`execute`.

    The browser is launched alongside the bounded wait, so a launcher that
    never returns cannot stretch ``callback_timeout``. The callback listener
    is stopped on every exit path.
    """

    def __init__(
        self,
        state: FlowState,
        token_manager: OAuth2TokenManager,
        browser: BrowserLauncher | None = None,
        callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT,
    ):
        self.flow_state = state
        self.phase = FlowPhase.CREATED
        self.history: list[FlowPhase] = [FlowPhase.CREATED]
        self.callback_timeout = callback_timeout
        self._token_manager = token_manager
        self._browser = browser or SystemBrowserLauncher()
        self._pkce = PKCEManager().generate_parameters(state.verifier)

    def authorization_url(self, resource: str) -> str:
        """Build the authorization URL for this attempt.

        The verifier itself is never part of the URL, only its S256 challenge.
        """
        request = AuthorizationRequest(
            authorization_endpoint=self.flow_state.endpoints.authorization_endpoint,
            client_id=self.flow_state.client_id,
            redirect_uri=self.flow_state.redirect_url,
            state=self.flow_state.state,
            code_challenge=self._pkce.code_challenge,
            code_challenge_method=self._pkce.code_challenge_method,
            resource=resource,
        )
        return request.build_authorization_url()

    async def execute(self, resource: str) -> TokenData:
        """Run the attempt and return the issued tokens.

        Args:
            resource: Canonical resource URI sent with both the authorization
                request and the token exchange

        Raises:
            AuthorizationTimeoutError: If no valid callback arrives in time
            CallbackListenerError: If the callback port cannot be bound
            OAuth2Error: Any token exchange failure
        """
        try:
            code = await self._wait_for_code(resource)
            token_data = await self._token_manager.exchange_code_for_token(
                TokenRequest(
                    token_endpoint=self.flow_state.endpoints.token_endpoint,
                    code=code,
                    redirect_uri=self.flow_state.redirect_url,
                    client_id=self.flow_state.client_id,
                    code_verifier=self.flow_state.verifier,
                    resource=resource,
                )
            )
        except BaseException:
            self._transition(FlowPhase.FAILED)
            raise

        self._transition(FlowPhase.EXCHANGED)
        return token_data

    async def _wait_for_code(self, resource: str) -> str:
        completion: OneShotCompletion[str] = OneShotCompletion()
        listener = CallbackListener(
            self.flow_state.redirect_url, self.flow_state.state, completion
        )
        authorization_url = self.authorization_url(resource)

        async with listener:
            self._transition(FlowPhase.LISTENING)
            launch = asyncio.create_task(self._browser.open(authorization_url))
            waiter = asyncio.ensure_future(completion.wait(self.callback_timeout))
            try:
                done, _ = await asyncio.wait(
                    {launch, waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                if waiter not in done:
                    # A launcher that raises fails the attempt
                    launch.result()
                try:
                    code = await waiter
                except asyncio.TimeoutError:
                    self._transition(FlowPhase.TIMED_OUT)
                    raise AuthorizationTimeoutError(self.callback_timeout) from None
            finally:
                waiter.cancel()
                if not launch.done():
                    launch.cancel()
                elif not launch.cancelled() and launch.exception() is not None:
                    logger.debug(f"Browser launcher failed: {launch.exception()}")

        self._transition(FlowPhase.CODE_RECEIVED)
        return code

    def _transition(self, phase: FlowPhase) -> None:
        logger.debug(f"Authorization flow: {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.history.append(phase)
