"""
Project Graph MCP HTTP Bridge

Exposes the resource/tool/prompt catalog over HTTP and forwards reads,
tool calls and prompt fetches to the attached Project Graph instance:
- Fixed /mcp endpoint table with permissive CORS for local tooling
- Advisory dispatch responses carrying a result ticket
- Result polling and server-sent events for published outcomes
- Health checks and Prometheus-style metrics

Usage:
    python bridge_server.py
    uvicorn --factory graph_bridge.server_http:create_default_app --host 127.0.0.1 --port 3100
"""

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from graph_bridge.config import mcp_settings
from graph_bridge.core.config import settings
from graph_bridge.core.error_catalog import build_error_payload, normalize_error_code
from graph_bridge.core.errors import BridgeError, StartupFailureError
from graph_bridge.core.logging_config import configure_logging, log_structured
from graph_bridge.handlers.dispatch_handler import DispatchBridge
from graph_bridge.instances.file_queue_instance import FileQueueInstance
from graph_bridge.lifecycle import ServerLifecycle
from graph_bridge.schemas.dispatch_schema import PublishResultRequest

configure_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Models
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    server_name: str
    version: str
    target: str
    target_label: str
    instance: Optional[Dict[str, Any]] = None
    result_backend: str
    resources: int
    tools: int
    prompts: int


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def _build_error_detail(
    message: str,
    *,
    code: str,
    request_id: Optional[str],
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build standardized API error detail with user-readable code and guidance."""
    return build_error_payload(
        normalize_error_code(code),
        message=message,
        details=details,
        request_id=request_id,
    )


def _http_error(error: BridgeError, request: Request) -> HTTPException:
    log_structured(
        logger,
        "warning" if error.status_code < 500 else "error",
        "request_rejected",
        request_id=_request_id(request),
        path=request.url.path,
        error_code=error.error_code,
        message=error.message,
    )
    return HTTPException(
        status_code=error.status_code,
        detail=error.to_payload(request_id=_request_id(request)),
    )


# =============================================================================
# Dependencies
# =============================================================================

def get_bridge(request: Request) -> DispatchBridge:
    return request.app.state.bridge


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    bridge: DispatchBridge = app.state.bridge

    log_structured(
        logger,
        "info",
        "server_starting",
        server_name=mcp_settings.MCP_SERVER_NAME,
        version=mcp_settings.MCP_SERVER_VERSION,
        target=bridge.instances.label,
    )

    await bridge.results.connect_redis(settings.REDIS_URL)
    await bridge.startup()
    log_structured(
        logger,
        "info",
        "catalog_loaded",
        target_attached=bridge.instances.is_attached,
        result_backend=bridge.results.backend,
        **bridge.catalog.summary(),
    )

    yield

    log_structured(logger, "info", "server_shutdown")
    await bridge.shutdown()


# =============================================================================
# MCP Endpoints
# =============================================================================

router = APIRouter(prefix="/mcp", tags=["MCP"])


@router.get("/resources")
async def list_resources(bridge: DispatchBridge = Depends(get_bridge)):
    """List all available MCP resources"""
    return {"resources": [r.to_dict() for r in bridge.list_resources()]}


def _raw_path_tail(request: Request, marker: str, fallback: str) -> str:
    """
    Path text after ``marker`` exactly as the client sent it.

    The routed path parameter has already been percent-decoded with
    replacement characters, so invalid UTF-8 would be lost.
    """
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return fallback
    text = raw_path.decode("latin-1").split("?", 1)[0]
    _, found, tail = text.partition(marker)
    return tail if found else fallback


@router.get("/resources/{uri:path}")
async def read_resource(
    uri: str,
    http_request: Request,
    bridge: DispatchBridge = Depends(get_bridge),
):
    """Read a specific MCP resource. Contents arrive on the result channel."""
    raw_uri = _raw_path_tail(http_request, f"{router.prefix}/resources/", uri)
    try:
        response = await bridge.read_resource(raw_uri)
    except BridgeError as e:
        raise _http_error(e, http_request)
    return response.to_body()


@router.get("/tools")
async def list_tools(bridge: DispatchBridge = Depends(get_bridge)):
    """List all available MCP tools"""
    return {"tools": [t.to_dict() for t in bridge.list_tools()]}


@router.post("/tools/{name}")
async def call_tool(
    name: str,
    http_request: Request,
    bridge: DispatchBridge = Depends(get_bridge),
):
    """Call an MCP tool. The body is passed through as the tool arguments."""
    raw_body = await http_request.body()
    args: Any = {}
    if raw_body.strip():
        try:
            args = json.loads(raw_body)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=_build_error_detail(
                    "Invalid JSON body",
                    code="MCP-INPUT-001",
                    request_id=_request_id(http_request),
                    details={"tool": name},
                ),
            )

    try:
        response = await bridge.call_tool(name, args)
    except BridgeError as e:
        raise _http_error(e, http_request)
    return response.to_body()


@router.get("/prompts")
async def list_prompts(bridge: DispatchBridge = Depends(get_bridge)):
    """List all available MCP prompts"""
    return {"prompts": [p.to_dict() for p in bridge.list_prompts()]}


@router.get("/prompts/{name}")
async def get_prompt(
    name: str,
    http_request: Request,
    bridge: DispatchBridge = Depends(get_bridge),
):
    """Get a specific MCP prompt"""
    try:
        response = await bridge.get_prompt(name)
    except BridgeError as e:
        raise _http_error(e, http_request)
    return response.to_body()


# =============================================================================
# Result Channel Endpoints
# =============================================================================

@router.get("/results/{ticket}")
async def get_result(
    ticket: str,
    http_request: Request,
    bridge: DispatchBridge = Depends(get_bridge),
):
    """Poll the outcome published for a dispatch ticket"""
    try:
        record = await bridge.results.get(ticket)
    except BridgeError as e:
        raise _http_error(e, http_request)
    return record.to_body()


@router.post("/results/{ticket}")
async def publish_result(
    ticket: str,
    request: PublishResultRequest,
    http_request: Request,
    bridge: DispatchBridge = Depends(get_bridge),
):
    """Publish an outcome for a ticket. Called by the application side."""
    try:
        record = await bridge.results.publish(ticket, request.status, request.result)
    except BridgeError as e:
        raise _http_error(e, http_request)
    return record.to_body()


@router.get("/events")
async def result_events(
    request: Request,
    bridge: DispatchBridge = Depends(get_bridge),
):
    """
    Server-Sent Events stream of published results.
    Lets clients observe outcomes without polling each ticket.
    """
    return StreamingResponse(
        bridge.results.event_stream(
            request.is_disconnected,
            mcp_settings.MCP_SSE_HEARTBEAT_SECONDS,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# =============================================================================
# Health & Metrics Endpoints
# =============================================================================

health_router = APIRouter()


@health_router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(bridge: DispatchBridge = Depends(get_bridge)):
    """Health check endpoint"""
    instance = bridge.instances.lookup()
    attached = instance is not None
    summary = bridge.catalog.summary()
    return HealthResponse(
        status="healthy" if attached else "degraded",
        server_name=mcp_settings.MCP_SERVER_NAME,
        version=mcp_settings.MCP_SERVER_VERSION,
        target="attached" if attached else "unavailable",
        target_label=bridge.instances.label,
        instance=instance.describe() if attached else None,
        result_backend=bridge.results.backend,
        **summary,
    )


@health_router.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
async def get_metrics(request: Request, bridge: DispatchBridge = Depends(get_bridge)):
    """Prometheus-style metrics endpoint"""
    metrics = request.app.state.metrics

    output = []
    output.append("# HELP mcp_requests_total Total HTTP requests")
    output.append("# TYPE mcp_requests_total counter")
    output.append(f'mcp_requests_total {metrics["requests_total"]}')

    output.append("# HELP mcp_errors_total Requests answered with a server error")
    output.append("# TYPE mcp_errors_total counter")
    output.append(f'mcp_errors_total {metrics["errors_total"]}')

    output.append("# HELP mcp_dispatch_total Commands delivered to the application")
    output.append("# TYPE mcp_dispatch_total counter")
    for kind, count in bridge.stats["dispatched"].items():
        output.append(f'mcp_dispatch_total{{kind="{kind}"}} {count}')

    output.append("# HELP mcp_delivery_failures_total Commands the channel refused")
    output.append("# TYPE mcp_delivery_failures_total counter")
    output.append(f'mcp_delivery_failures_total {bridge.stats["delivery_failures"]}')

    output.append("# HELP mcp_target_unavailable_total Dispatches with no attached instance")
    output.append("# TYPE mcp_target_unavailable_total counter")
    output.append(f'mcp_target_unavailable_total {bridge.stats["target_unavailable"]}')

    output.append("# HELP mcp_event_subscribers Open result event streams")
    output.append("# TYPE mcp_event_subscribers gauge")
    output.append(f"mcp_event_subscribers {bridge.results.subscriber_count}")

    return "\n".join(output) + "\n"


# =============================================================================
# FastAPI Application
# =============================================================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap framework errors (unknown route, wrong method) in the error payload shape."""
    detail = exc.detail
    if not isinstance(detail, dict):
        code = {404: "MCP-ROUTE-001", 405: "MCP-ROUTE-002"}.get(exc.status_code, "MCP-INTERNAL-001")
        detail = _build_error_detail(
            str(detail),
            code=code,
            request_id=_request_id(request),
            details={"path": request.url.path, "method": request.method},
        )
    return JSONResponse(
        {"detail": detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {
            "detail": _build_error_detail(
                "Request validation failed",
                code="MCP-INPUT-002",
                request_id=_request_id(request),
                details={"errors": jsonable_encoder(exc.errors())},
            )
        },
        status_code=400,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        {
            "detail": _build_error_detail(
                "Unexpected internal server error",
                code="MCP-INTERNAL-001",
                request_id=_request_id(request),
            )
        },
        status_code=500,
    )


def create_app(bridge: Optional[DispatchBridge] = None) -> FastAPI:
    """Build a bridge application around an injected DispatchBridge."""
    app = FastAPI(
        title="Project Graph MCP Bridge",
        description="HTTP bridge from MCP clients to a running Project Graph instance",
        version=mcp_settings.MCP_SERVER_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.bridge = bridge or DispatchBridge()
    app.state.metrics = {"requests_total": 0, "errors_total": 0}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """
        Attach request ID and emit request-level logs for correlation.
        """
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        started_at = time.time()
        metrics = request.app.state.metrics
        metrics["requests_total"] += 1

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = int((time.time() - started_at) * 1000)
            metrics["errors_total"] += 1
            logger.exception("Unhandled request exception")
            log_structured(
                logger,
                "error",
                "request_failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=500,
                duration_ms=duration_ms,
            )
            raise

        duration_ms = int((time.time() - started_at) * 1000)
        if response.status_code >= 500:
            metrics["errors_total"] += 1
        response.headers["X-Request-ID"] = request_id
        log_structured(
            logger,
            "info",
            "request_completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return response

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(router)
    app.include_router(health_router)
    return app


def create_default_app() -> FastAPI:
    """Application wired to the file queue instance under MCP_QUEUE_DIR."""
    bridge = DispatchBridge()
    bridge.attach(FileQueueInstance(mcp_settings.MCP_QUEUE_DIR))
    return create_app(bridge)


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Run the bridge server until interrupted"""
    lifecycle = ServerLifecycle(create_default_app())

    try:
        lifecycle.start()
    except StartupFailureError as e:
        log_structured(logger, "error", "server_startup_failed", **e.to_payload())
        raise SystemExit(1)

    try:
        lifecycle.wait()
    except KeyboardInterrupt:
        logger.info("[Bridge] Shutting down...")
        lifecycle.stop()


if __name__ == "__main__":
    main()
