"""Proxy pipeline: classify, build, authorize, dispatch, process."""

from enum import Enum

import httpx
from fastapi import Response

from core.protocols import RequestLogger, TokenSource
from core.request_types import InboundRequest
from core.router import RouteClassifier
from services.responses import ResponseProcessor
from services.routing_service import RoutingService
from services.upstream import UpstreamClient


class ProxyStage(str, Enum):
    CLASSIFYING = "classifying"
    BUILDING_REQUEST = "building_request"
    ACQUIRING_TOKEN = "acquiring_token"
    DISPATCHING = "dispatching"
    PROCESSING_RESPONSE = "processing_response"


class ProxyOrchestrator:
    """Run one inbound request through the proxy pipeline.

    Any failure ends the request with a bare 503 and a single error record;
    nothing is retried.
    """

    def __init__(
        self,
        classifier: RouteClassifier,
        routing_service: RoutingService,
        token_source: TokenSource,
        upstream: UpstreamClient,
        processor: ResponseProcessor,
        logger: RequestLogger,
    ) -> None:
        self._classifier = classifier
        self._routing = routing_service
        self._tokens = token_source
        self._upstream = upstream
        self._processor = processor
        self._logger = logger

    async def handle(self, inbound: InboundRequest) -> Response:
        stage = ProxyStage.CLASSIFYING
        upstream_response: httpx.Response | None = None
        try:
            classification = self._classifier.classify(inbound.route)

            stage = ProxyStage.BUILDING_REQUEST
            outbound = self._routing.build_request(inbound, classification)

            if classification.requires_token:
                stage = ProxyStage.ACQUIRING_TOKEN
                outbound = outbound.with_bearer(await self._tokens.get_token())

            stage = ProxyStage.DISPATCHING
            upstream_response = await self._upstream.send(outbound)

            stage = ProxyStage.PROCESSING_RESPONSE
            response = await self._processor.process(classification, upstream_response)
        except Exception as e:
            if upstream_response is not None:
                await upstream_response.aclose()
            self._logger.log_error(inbound.method, inbound.route, stage.value, e)
            return Response(status_code=503)

        self._logger.log_request(
            inbound.method, inbound.route, classification.kind, response.status_code
        )
        return response
