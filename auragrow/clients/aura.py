import logging
from typing import Any, Dict, Optional

import httpx

from auragrow.config import Settings
from auragrow.errors import RemoteError

logger = logging.getLogger(__name__)


class AuraClient:
    """Async client for the AURA portfolio balances and strategies endpoints."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def fetch_balances(self, address: str, api_key: Optional[str] = None) -> Any:
        return await self._get_json(self.settings.balances_endpoint, address, api_key)

    async def fetch_strategies(self, address: str, api_key: Optional[str] = None) -> Any:
        return await self._get_json(self.settings.strategies_endpoint, address, api_key)

    async def _get_json(self, url: str, address: str, api_key: Optional[str]) -> Any:
        params: Dict[str, str] = {"address": address}
        if api_key:
            params["apiKey"] = api_key

        try:
            async with httpx.AsyncClient(timeout=self.settings.http_timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            logger.warning("HTTP error calling %s: %s", url, exc)
            raise RemoteError(url, reason=str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            logger.warning("AURA API %s returned %s", url, response.status_code)
            raise RemoteError(url, status_code=response.status_code, reason=response.reason_phrase)

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(url, status_code=response.status_code, reason="invalid JSON body") from exc
