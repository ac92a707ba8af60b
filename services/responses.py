"""Turn upstream ESI responses into responses for the caller."""

import httpx
from fastapi import Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from core.headers import HeaderBuilder
from core.router import CharacterOnline, RouteClassification
from core.transform import ResponseTransformer

# The rewritten body no longer matches the upstream framing or encoding.
REWRITE_DROPPED_HEADERS = ("content-length", "content-encoding")


def _encode(headers: list[tuple[str, str]]) -> list[tuple[bytes, bytes]]:
    return [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers]


class ResponseProcessor:
    """Copy status and headers, rewriting the body where a route requires it."""

    def __init__(self, header_builder: HeaderBuilder, transformer: ResponseTransformer) -> None:
        self._headers = header_builder
        self._transformer = transformer

    async def process(
        self,
        classification: RouteClassification,
        upstream: httpx.Response,
    ) -> Response | StreamingResponse:
        """Build the caller response.

        For the legacy online route the whole body is read and decoded before
        anything is returned, so a decode failure never follows a sent status.
        Upstream errors on that route are passed through as they are.
        """
        legacy = isinstance(classification, CharacterOnline) and classification.legacy_shape
        if legacy and upstream.is_success:
            return await self._legacy_online(upstream)
        return self._passthrough(upstream)

    async def _legacy_online(self, upstream: httpx.Response) -> Response:
        try:
            raw = await upstream.aread()
        finally:
            await upstream.aclose()

        body = self._transformer.legacy_online_body(raw)
        response = Response(content=body, status_code=upstream.status_code)
        headers = self._headers.build_response_headers(
            upstream.headers.multi_items(), drop=REWRITE_DROPPED_HEADERS
        )
        if "content-type" not in upstream.headers:
            headers.append(("content-type", "application/json"))
        response.raw_headers.extend(_encode(headers))
        return response

    def _passthrough(self, upstream: httpx.Response) -> StreamingResponse:
        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        headers = self._headers.build_response_headers(upstream.headers.multi_items())
        response.raw_headers = _encode(headers)
        return response
