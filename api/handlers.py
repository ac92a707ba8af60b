"""FastAPI route handlers."""

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse

from core.config import Config
from core.request_types import InboundRequest
from services.routing_service import BODY_METHODS
from ui.log_utils import write_incoming_log


def raw_route(request: Request, fallback: str) -> str:
    """Return the route still percent-encoded, without the leading '/'.

    The decoded path parameter would turn %3F or %2F into URL syntax.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path is None:
        return fallback
    path = raw_path.decode("latin-1").split("?", 1)[0]
    root_path = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path):]
    return path[1:] if path.startswith("/") else path


def inbound_from_request(request: Request, route: str) -> InboundRequest:
    """Capture the parts of a starlette request the proxy pipeline needs."""
    headers = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in request.headers.raw]
    body = request.stream() if request.method.upper() in BODY_METHODS else None
    return InboundRequest(
        method=request.method,
        route=raw_route(request, route),
        query_string=request.url.query,
        headers=headers,
        body=body,
    )


async def handle_proxy(request: Request, esi_route: str, config: Config) -> Response:
    """Forward any ESI route through the proxy pipeline."""
    inbound = inbound_from_request(request, esi_route)
    if config.proxy.debug:
        write_incoming_log(
            request.method, inbound.route, dict(inbound.header_items()), inbound.query_string
        )

    orchestrator = request.app.state.orchestrator
    return await orchestrator.handle(inbound)


async def handle_hello() -> Response:
    return PlainTextResponse("Hello There")


async def handle_favicon() -> Response:
    return Response(content=b"")
