import asyncio

import httpx

from logging_config import get_logger

logger = get_logger(__name__)


async def keep_alive(client: httpx.AsyncClient, url: str, interval_ms: int):
    """Ping ``url`` forever so free hosting does not put the server to sleep."""
    logger.info(f"Starting keep-alive pinger for {url} every {interval_ms} ms")
    try:
        while True:
            await asyncio.sleep(interval_ms / 1000)
            try:
                response = await client.get(url)
                logger.info(f"Keep-alive ping to {url} returned {response.status_code}")
            except httpx.HTTPError as e:
                logger.error(f"Keep-alive ping to {url} failed: {e}")
    except asyncio.CancelledError:
        logger.info("Keep-alive pinger cancelled")
        raise
