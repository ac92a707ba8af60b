"""HTTP dispatch of prepared requests to ESI."""

import httpx

from core.exceptions import DispatchError, UpstreamConnectionError, UpstreamTimeoutError
from core.request_types import OutboundRequest


class UpstreamClient:
    """Send outbound requests to ESI, leaving the response body unread."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(self, outbound: OutboundRequest) -> httpx.Response:
        """Dispatch the request; the caller owns closing the response."""
        try:
            request = self._client.build_request(
                outbound.method,
                outbound.url,
                headers=outbound.headers,
                content=outbound.body,
            )
            return await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Upstream timeout: {e!r}") from e
        except httpx.RequestError as e:
            raise UpstreamConnectionError(f"Upstream connection error: {e!r}") from e
        except httpx.InvalidURL as e:
            raise DispatchError(f"Invalid upstream URL {outbound.url!r}: {e}") from e
