"""
Log in to a remote MCP server and print the access token.

Set LATCHKEY_TARGET_URL (or pass the URL as the first argument). Optional:
LATCHKEY_DISCOVERY_PATH, LATCHKEY_REDIRECT_URI, LATCHKEY_LOG_LEVEL. A .env
file in the working directory is loaded first.
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from latchkey.auth.client.models.config import ServiceConfig
from latchkey.auth.client.models.errors import OAuth2Error
from latchkey.auth.client.oauth_client import authenticate


async def main(target_url: str) -> int:
    try:
        config = ServiceConfig.from_target(target_url)
        if discovery_path := os.getenv("LATCHKEY_DISCOVERY_PATH"):
            config = config.with_custom_discovery(discovery_path)
        if redirect_uri := os.getenv("LATCHKEY_REDIRECT_URI"):
            config = config.with_redirect_uri(redirect_uri)

        access_token = await authenticate(config, target_url)
    except OAuth2Error as e:
        logging.error(f"Authentication failed: {e}")
        return 1

    print(access_token)
    return 0


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=os.getenv("LATCHKEY_LOG_LEVEL", "INFO"))

    target = sys.argv[1] if len(sys.argv) > 1 else os.getenv("LATCHKEY_TARGET_URL")
    if not target:
        sys.exit("Usage: python -m latchkey.examples.login <mcp-server-url>")
    sys.exit(asyncio.run(main(target)))
