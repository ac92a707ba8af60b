"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_favicon, handle_hello, handle_proxy
from auth import build_token_source
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.router import RouteClassifier
from core.transform import ResponseTransformer
from services.orchestrator import ProxyOrchestrator
from services.responses import ResponseProcessor
from services.routing_service import RoutingService
from services.upstream import UpstreamClient

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` replaces the network for both the ESI and SSO clients.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(
            max_connections=config.limits.max_connections,
            max_keepalive_connections=config.limits.max_keepalive_connections,
        )
        esi_client = httpx.AsyncClient(
            timeout=config.limits.request_timeout,
            limits=limits,
            transport=transport,
        )
        sso_client = httpx.AsyncClient(
            base_url=config.esi.sso_url,
            timeout=config.limits.request_timeout,
            transport=transport,
        )
        header_builder = HeaderBuilder()
        app.state.token_source = build_token_source(config.esi, sso_client)
        app.state.orchestrator = ProxyOrchestrator(
            classifier=RouteClassifier(),
            routing_service=RoutingService(config.esi, header_builder),
            token_source=app.state.token_source,
            upstream=UpstreamClient(esi_client),
            processor=ResponseProcessor(header_builder, ResponseTransformer()),
            logger=logger,
        )
        try:
            yield
        finally:
            await esi_client.aclose()
            await sso_client.aclose()

    app = FastAPI(title="ESI Search Proxy", version="0.1.0", lifespan=lifespan)

    @app.get("/hello")
    async def hello():
        return await handle_hello()

    @app.get("/favicon.ico")
    async def favicon():
        return await handle_favicon()

    @app.api_route("/{esi_route:path}", methods=PROXY_METHODS)
    async def proxy(request: Request, esi_route: str):
        return await handle_proxy(request, esi_route, config)

    return app
