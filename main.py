import uuid
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from aggregation.aggregator import Aggregator
from aggregation.errors import (
    GatewayError,
    InvalidQueryError,
    NormalizationError,
    NotFoundError,
    UpstreamError,
)
from aggregation.logging_config import audit_log, get_request_id, set_log_level
from aggregation.middleware import RequestResponseLoggerMiddleware
from aggregation.schemas import QueryExecuteRequest
from providers.cfbd import CfbdClient
from providers.espn import EspnClient
from providers.ncaa import NcaaClient
from config import config

STATUS_CODES = {
    InvalidQueryError: 400,
    NotFoundError: 404,
    UpstreamError: 502,
    NormalizationError: 502,
}


def create_aggregator() -> Aggregator:
    """Factory function wiring one client per provider domain."""
    provider_config = config.get_provider_config()
    clients = {
        "espn": EspnClient(provider_config),
        "cfbd": CfbdClient(provider_config),
        "ncaa": NcaaClient(provider_config),
    }
    return Aggregator(
        clients,
        lookback_days=config.current_game_lookback_days,
        schedule_limit=config.schedule_limit,
        dedupe_inflight=config.dedupe_inflight,
    )


def create_app(aggregator: Aggregator) -> FastAPI:
    app = FastAPI(
        title="College Sports Gateway",
        description="Unified, cached access to live-score, analytics and multi-division sports data",
        version="1.0.0",
    )

    # Add middleware for request/response logging
    app.add_middleware(RequestResponseLoggerMiddleware)
    app.state.aggregator = aggregator

    @app.post("/query/execute")
    async def query_execute(request: QueryExecuteRequest):
        """
        Run one logical query through the cache and normalization layer.

        Returns the canonical result, or an error body whose code tells a
        missing entity apart from a provider failure.
        """
        request_id = get_request_id() or request.requestId or str(uuid.uuid4())
        audit_log(stage="query_start", kind=request.kind)

        try:
            result = await aggregator.query(request.kind, request.params)
        except GatewayError as e:
            status_code = STATUS_CODES.get(type(e), 500)
            audit_log(
                stage="query_complete",
                outcome="error",
                kind=request.kind,
                error_code=e.code,
            )
            content = e.to_dict()
            content["requestId"] = request_id
            return JSONResponse(status_code=status_code, content=content)
        except Exception as e:
            audit_log(
                level="ERROR",
                stage="query_complete",
                outcome="error",
                kind=request.kind,
                reason=f"Unhandled exception: {type(e).__name__}: {e}",
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "code": "INTERNAL_ERROR",
                    "requestId": request_id,
                },
            )

        audit_log(stage="query_complete", outcome="success", kind=request.kind)
        return {
            "requestId": request_id,
            "kind": request.kind,
            "data": result.model_dump(mode="json"),
        }

    @app.post("/admin/cache/clear")
    async def clear_cache():
        """Operator action: drop every cached entry in every provider domain."""
        return {"cleared": aggregator.clear_all()}

    @app.get("/admin/cache/stats")
    async def cache_stats():
        return aggregator.cache_stats()

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "providers": sorted(aggregator.clients)}

    @app.get("/operations")
    async def get_operations():
        """Get information about supported query kinds and their parameters."""
        return aggregator.get_operation_info()

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Endpoint not found",
                "code": "NOT_FOUND",
                "details": {"message": "Use POST /query/execute for queries"},
            },
        )

    @app.exception_handler(405)
    async def method_not_allowed_handler(request: Request, exc):
        return JSONResponse(
            status_code=405,
            content={
                "error": "Method not allowed",
                "code": "METHOD_NOT_ALLOWED",
                "details": {"message": "Use POST /query/execute for queries"},
            },
        )

    return app


set_log_level(config.log_level)
app = create_app(create_aggregator())


if __name__ == "__main__":
    import uvicorn

    print(f"Starting server with configuration:\n{config}")
    uvicorn.run("main:app", host=config.host, port=config.port, reload=True)
