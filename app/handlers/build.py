"""
Static frontend rebuild webhook.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


async def trigger_frontend_build(webhook_url: Optional[str], timeout: float = 10.0) -> bool:
    """
    POST to the build hook so the public site picks up the change.

    No configured URL is a silent no-op. Failures are logged, never raised.
    """
    if not webhook_url:
        logger.debug("No FRONTEND_BUILD_HOOK_URL configured, skipping frontend build trigger")
        return False

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(webhook_url)
        if response.is_success:
            logger.info("Frontend build triggered")
            return True
        logger.error("Failed to trigger frontend build: HTTP %s", response.status_code)
    except httpx.HTTPError:
        logger.exception("Error triggering frontend build")
    return False
