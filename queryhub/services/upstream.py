import httpx
import logging
from pydantic import BaseModel
from typing import Any, Callable, Dict, Optional
from queryhub.config import Settings, settings as default_settings
from queryhub.models.records import QueryType
from queryhub.services.parsers import parse_full_name, parse_identity, parse_phone_number
from queryhub.utils.exceptions import UpstreamError
from queryhub.utils.normalize import mask_value

logger = logging.getLogger(__name__)

# Returned both for genuine empty upstream answers and for protected identities
NO_DATA_MESSAGE = "No data found for this query"

PARSERS: Dict[QueryType, Callable[[str], Any]] = {
    QueryType.IDENTITY: parse_identity,
    QueryType.FULL_NAME: parse_full_name,
    QueryType.PHONE_NUMBER: parse_phone_number,
}


class UpstreamResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class UpstreamClient:
    """Third-party lookup API returning report text under ``resultado``"""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or default_settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.upstream_base_url,
                timeout=self.config.upstream_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def _fetch_text(self, query_type: QueryType, parameter: str) -> str:
        path = self.config.upstream_paths[query_type.value]
        param_name = self.config.upstream_params[query_type.value]

        try:
            response = await self._get_client().get(path, params={param_name: parameter})
        except httpx.HTTPError as e:
            raise UpstreamError(f"Upstream request failed: {str(e) or type(e).__name__}")

        if response.is_error:
            raise UpstreamError(f"API returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamError("Invalid API response")

        if not isinstance(payload, dict):
            raise UpstreamError("Invalid API response")

        text = payload.get("resultado")
        if not isinstance(text, str) or not text.strip():
            raise UpstreamError(NO_DATA_MESSAGE)
        return text

    async def lookup(self, query_type: QueryType, parameter: str) -> UpstreamResult:
        query_type = QueryType(query_type)
        logger.info(f"Querying upstream {query_type.value}: {mask_value(query_type, parameter)}")

        try:
            text = await self._fetch_text(query_type, parameter)
            data = PARSERS[query_type](text)
        except UpstreamError as e:
            logger.error(f"Upstream {query_type.value} lookup failed: {e.message}")
            return UpstreamResult(success=False, error=e.message)

        if data is None:
            return UpstreamResult(success=False, error=NO_DATA_MESSAGE)
        return UpstreamResult(success=True, data=data)

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Upstream client closed")
