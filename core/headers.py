"""Header filtering for upstream requests and proxied responses."""

from collections.abc import Iterable

# Control headers meant for the proxy itself; never sent upstream.
PROXY_REQUEST_HEADERS = frozenset({"host", "x-proxy-auth", "x-entity-id", "x-token-type"})

# Upstream response headers that must not reach the caller as-is.
STRIPPED_RESPONSE_HEADERS = frozenset({"strict-transport-security", "transfer-encoding"})


class HeaderBuilder:
    """Build upstream request headers and caller response headers."""

    def __init__(
        self,
        request_denylist: Iterable[str] = PROXY_REQUEST_HEADERS,
        response_denylist: Iterable[str] = STRIPPED_RESPONSE_HEADERS,
    ):
        self.request_denylist = frozenset(h.lower() for h in request_denylist)
        self.response_denylist = frozenset(h.lower() for h in response_denylist)

    def build_upstream_headers(
        self,
        headers: Iterable[tuple[str, str]],
        drop: Iterable[str] = (),
    ) -> list[tuple[str, str]]:
        """Copy inbound headers, dropping the proxy's own control headers plus any extra names."""
        denied = self.request_denylist | {h.lower() for h in drop}
        return [(k, v) for k, v in headers if k.lower() not in denied]

    def build_response_headers(
        self,
        headers: Iterable[tuple[str, str]],
        drop: Iterable[str] = (),
    ) -> list[tuple[str, str]]:
        """Copy upstream headers, dropping unsafe ones plus any extra names."""
        denied = self.response_denylist | {h.lower() for h in drop}
        return [(k, v) for k, v in headers if k.lower() not in denied]
