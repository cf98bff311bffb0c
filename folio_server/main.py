"""Application entrypoint for the folio tracker server."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Awaitable, Callable

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from folio_server.config.settings import Settings, get_settings
from folio_server.portfolio.portfolio_service import BadRequest
from folio_server.portfolio.store import PortfolioStore
from folio_server.runtime.monitoring import configure_logging, log_request_event, new_request_id
from folio_server.runtime.response import describe_error, error_body, to_json
from folio_server.services.base import parse_symbols_param
from folio_server.tools.registry import ToolServices, build_tool_services, register_all_tools

LOGGER = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


def resolve_transport_mode(configured_mode: str) -> str:
    if configured_mode in {"stdio", "http"}:
        return configured_mode
    if os.getenv("PORT"):
        return "http"
    return "stdio"


def resolve_http_transport(configured_transport: str) -> str:
    if configured_transport in {"sse", "streamable"}:
        return configured_transport
    return "sse"


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as error:
        raise BadRequest("Request body must be valid JSON") from error
    if not isinstance(body, dict):
        raise BadRequest("Request body must be a JSON object")
    return body


def register_http_routes(mcp: FastMCP, services: ToolServices, settings: Settings, mode: str) -> None:
    async def dispatch(
        request: Request,
        handler: Callable[[], Awaitable[Any]],
        success_status: int = 200,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        started = time.perf_counter()
        error_code: str | None = None
        try:
            data = await handler()
            response: Response = Response(
                content=to_json(data),
                status_code=success_status,
                media_type="application/json",
            )
        except Exception as error:
            status, error_code, message = describe_error(error)
            if status >= 500:
                LOGGER.exception("request failed: method=%s path=%s request_id=%s", request.method, request.url.path, request_id)
            response = JSONResponse(
                error_body(error_code, message, request.url.path, request_id),
                status_code=status,
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        if settings.log_http_requests:
            latency_ms = (time.perf_counter() - started) * 1000.0
            log_request_event(request.method, request.url.path, response.status_code, latency_ms, request_id, error_code)
        return response

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(request: Request) -> Response:
        async def handler() -> dict[str, Any]:
            tools = await mcp.list_tools()
            return {
                "ok": True,
                "service": settings.app_name,
                "version": settings.app_version,
                "mode": mode,
                "tool_count": len(tools),
            }

        return await dispatch(request, handler)

    @mcp.custom_route("/api/stocks", methods=["GET"])
    async def stocks(request: Request) -> Response:
        async def handler() -> dict[str, Any]:
            symbols = parse_symbols_param(request.query_params.get("symbols"), services.max_symbols_per_request)
            return {"stocks": await services.quotes.get_quotes(symbols)}

        return await dispatch(request, handler)

    @mcp.custom_route("/portfolios", methods=["POST"])
    async def create_portfolio(request: Request) -> Response:
        async def handler() -> dict[str, str]:
            return await asyncio.to_thread(services.portfolio.create_portfolio)

        return await dispatch(request, handler, success_status=201)

    @mcp.custom_route("/portfolios/link", methods=["POST"])
    async def link_portfolio(request: Request) -> Response:
        async def handler() -> dict[str, str]:
            body = await _json_body(request)
            return await asyncio.to_thread(services.portfolio.link_portfolio, body.get("recoveryCode"))

        return await dispatch(request, handler)

    @mcp.custom_route("/portfolios/{portfolio_id}", methods=["GET"])
    async def get_portfolio(request: Request) -> Response:
        async def handler() -> dict[str, Any]:
            return services.portfolio.get_portfolio(request.path_params["portfolio_id"])

        return await dispatch(request, handler)

    @mcp.custom_route("/portfolios/{portfolio_id}/positions", methods=["POST"])
    async def create_position(request: Request) -> Response:
        async def handler() -> dict[str, Any]:
            body = await _json_body(request)
            return services.portfolio.create_position(request.path_params["portfolio_id"], body)

        return await dispatch(request, handler, success_status=201)

    @mcp.custom_route("/portfolios/{portfolio_id}/positions/{position_id}", methods=["PATCH", "DELETE"])
    async def position_detail(request: Request) -> Response:
        portfolio_id = request.path_params["portfolio_id"]
        position_id = request.path_params["position_id"]

        async def handler() -> dict[str, Any]:
            if request.method == "DELETE":
                return services.portfolio.delete_position(portfolio_id, position_id)
            body = await _json_body(request)
            return services.portfolio.update_position(portfolio_id, position_id, body)

        return await dispatch(request, handler)


def build_server(settings: Settings, store: PortfolioStore | None = None) -> tuple[FastMCP, ToolServices]:
    mcp = FastMCP(
        name=settings.app_name,
        host=settings.host,
        port=settings.port,
        streamable_http_path=settings.mcp_path,
    )
    services = build_tool_services(settings, store)
    register_all_tools(mcp, services)
    register_http_routes(mcp, services, settings, resolve_transport_mode(settings.transport_mode))
    return mcp, services


async def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    mcp, _ = build_server(settings)
    resolved_mode = resolve_transport_mode(settings.transport_mode)
    resolved_http_transport = resolve_http_transport(settings.http_transport)

    if not settings.finnhub_api_key:
        LOGGER.warning("FINNHUB_API_KEY is not set; quote lookups will fail and be omitted from results")
    LOGGER.info("starting server: mode=%s http_transport=%s port=%s", resolved_mode, resolved_http_transport, settings.port)
    if resolved_mode == "stdio":
        await mcp.run_stdio_async()
    elif resolved_http_transport == "streamable":
        await mcp.run_streamable_http_async()
    else:
        await mcp.run_sse_async()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
