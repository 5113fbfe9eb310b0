"""
Outbound upload webhook.

Fire-and-forget: failures are logged and never reach the caller, and
nothing is retried.
"""

import logging

import httpx

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10.0


def notify_upload_webhook(
    url: str,
    download_url: str,
    http_client: httpx.Client | None = None,
) -> bool:
    """
    POST ``{"download_url": ...}`` to ``url``.

    Returns True on a 2xx response, False otherwise (including when no
    URL is configured).
    """
    if not url:
        logger.debug("Upload webhook not configured, skipping")
        return False

    client = http_client or httpx.Client(timeout=WEBHOOK_TIMEOUT)
    try:
        response = client.post(url, json={"download_url": download_url})
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Upload webhook failed: %s", e)
        return False
    finally:
        if http_client is None:
            client.close()

    logger.info("Upload webhook notified for %s", download_url)
    return True
