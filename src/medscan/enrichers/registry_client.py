# ============================================================================
# src/medscan/enrichers/registry_client.py
# ============================================================================
"""
Shared HTTP plumbing for the public product registries (openFDA,
OpenFoodFacts, UPCItemDB).

Lookups try several candidate codes in turn. A failed request of any kind
(non-200, timeout, connection error, malformed JSON) is logged and treated
as "not found here" so the caller moves on to the next candidate.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
import asyncio
import logging

import aiohttp

from ..config import lookup_settings


class RegistryClient:
    """
    Base for registry lookup clients.

    Args:
        timeout: Seconds allowed per request (default: LOOKUP_TIMEOUT)
        session: Existing aiohttp session to reuse. When omitted, each
                 lookup opens its own session and closes it afterwards.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.timeout = timeout or lookup_settings.LOOKUP_TIMEOUT
        self._session = session

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return

        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        try:
            yield session
        finally:
            await session.close()

    async def _fetch_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Optional[Dict[str, str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        GET ``url`` and decode the JSON body.

        Returns:
            Parsed body, or None on any failure
        """
        async def _do_request():
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    self.logger.debug(f"{url} returned HTTP {response.status}")
                    return None
                return await response.json(content_type=None)

        try:
            data = await asyncio.wait_for(_do_request(), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Request to {url} timed out after {self.timeout}s")
            return None
        except aiohttp.ClientError as e:
            self.logger.warning(f"Request to {url} failed: {e}")
            return None
        except ValueError as e:
            self.logger.warning(f"Malformed JSON from {url}: {e}")
            return None

        if data is not None and not isinstance(data, dict):
            self.logger.warning(f"Unexpected JSON payload from {url}: {type(data).__name__}")
            return None
        return data
