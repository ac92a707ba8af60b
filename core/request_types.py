"""Shared request data types."""

from collections.abc import AsyncIterable
from dataclasses import dataclass, replace

HeaderList = list[tuple[str, str]]


@dataclass(frozen=True)
class InboundRequest:
    """A request as received by the proxy route."""

    method: str
    route: str
    query_string: str = ""
    headers: HeaderList | None = None
    body: AsyncIterable[bytes] | None = None

    def header_items(self) -> HeaderList:
        return list(self.headers or [])


@dataclass(frozen=True)
class OutboundRequest:
    """Prepared data for an upstream request."""

    method: str
    url: str
    headers: HeaderList
    body: AsyncIterable[bytes] | None = None

    def with_bearer(self, token: str) -> "OutboundRequest":
        """Return a copy carrying the token as its only Authorization header."""
        headers = [(k, v) for k, v in self.headers if k.lower() != "authorization"]
        headers.append(("Authorization", f"Bearer {token}"))
        return replace(self, headers=headers)

    def header(self, name: str) -> str | None:
        """Return the first value of a header, matched case-insensitively."""
        name = name.lower()
        return next((v for k, v in self.headers if k.lower() == name), None)
