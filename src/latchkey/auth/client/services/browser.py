"""User-agent launching for the authorization redirect."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import Protocol

logger = logging.getLogger(__name__)


class BrowserLauncher(Protocol):
    """Protocol for sending the user to the authorization URL.

    Allows different strategies for browser interaction:
    - System default browser
    - Printing the URL for manual use
    - Test doubles that drive the callback directly
    """

    async def open(self, url: str) -> bool:
        """Open ``url`` for the user.

        Returns:
            True if a browser was launched, False if the user must open it manually
        """
        ...


class SystemBrowserLauncher:
    """Opens the user's default browser.

    ``webbrowser.open`` runs in a worker thread so the event loop keeps
    serving the callback listener. Failure is never fatal: the URL is
    logged for the user to open by hand.
    """

    async def open(self, url: str) -> bool:
        logger.info("Opening browser for OAuth authentication...")
        try:
            opened = await asyncio.to_thread(webbrowser.open, url)
        except webbrowser.Error as e:
            logger.debug(f"Browser launch failed: {e}")
            opened = False

        if not opened:
            logger.warning(
                "Could not open browser automatically. "
                f"Please open this URL manually: {url}"
            )
        return opened
