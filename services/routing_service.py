"""Outbound request construction for proxied ESI calls."""

import httpx

from core.config import EsiSettings
from core.headers import HeaderBuilder
from core.request_types import InboundRequest, OutboundRequest
from core.router import CharacterOnline, CharacterSearch, RouteClassification

KNOWN_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Framing headers that would describe a body the outbound request no longer has.
BODY_HEADERS = ("content-length", "transfer-encoding", "content-type")


def normalize_method(method: str) -> str:
    """Upper-case known verbs; keep anything else as a custom verb."""
    upper = method.upper()
    return upper if upper in KNOWN_METHODS else method


def normalize_path(route: str) -> str:
    return route if route.startswith("/") else f"/{route}"


class RoutingService:
    """Build the upstream request for a classified inbound request."""

    def __init__(self, settings: EsiSettings, header_builder: HeaderBuilder) -> None:
        self._settings = settings
        self._headers = header_builder

    def build_request(
        self,
        inbound: InboundRequest,
        classification: RouteClassification,
        auth_token: str | None = None,
    ) -> OutboundRequest:
        """Resolve target path, method, headers and body for the upstream."""
        path, method = self._resolve_target(inbound, classification)
        url = self.upstream_url(path, inbound.query_string)

        body = inbound.body if method.upper() in BODY_METHODS else None
        headers = self._headers.build_upstream_headers(
            inbound.header_items(), drop=BODY_HEADERS if body is None else ()
        )

        outbound = OutboundRequest(method=method, url=url, headers=headers, body=body)
        if auth_token is not None:
            outbound = outbound.with_bearer(auth_token)
        return outbound

    def upstream_url(self, path: str, query_string: str = "") -> str:
        url = f"{self._settings.base_url}{path}"
        if query_string:
            url = f"{url}?{query_string}"
        # Fail here rather than at dispatch when the URL cannot be parsed.
        httpx.URL(url)
        return url

    def _resolve_target(
        self,
        inbound: InboundRequest,
        classification: RouteClassification,
    ) -> tuple[str, str]:
        if isinstance(classification, CharacterSearch):
            return f"/v3/characters/{self._settings.character_id}/search/", "GET"
        if isinstance(classification, CharacterOnline) and classification.legacy_shape:
            return f"/v3/characters/{classification.character_id}/online/", "GET"
        return normalize_path(inbound.route), normalize_method(inbound.method)
