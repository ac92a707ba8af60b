"""Shared protocol definitions."""

from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_request(self, method: str, route: str, kind: str, status: int) -> None: ...
    def log_error(self, method: str, route: str, stage: str, error: BaseException) -> None: ...


class TokenSource(Protocol):
    """Anything that hands out an ESI access token (TokenCache, UncachedTokenSource)."""

    async def get_token(self) -> str: ...
