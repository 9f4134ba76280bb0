from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

REQUEST_COUNT = Counter(
    "ifarmer_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "ifarmer_http_request_duration_seconds",
    "HTTP request latency (seconds)",
    ["method", "path"],
)
COMPONENT_BINDINGS = Counter(
    "ifarmer_component_bindings_total",
    "Component registration outcomes during discovery",
    ["policy", "outcome"],
)
PROVISIONING_ACTIONS = Counter(
    "ifarmer_identity_provisioning_actions_total",
    "Identity store changes made by provisioning",
    ["action"],
)
ALLOWED_HTTP_METHOD_LABELS = {"GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"}
UNMATCHED_PATH_LABEL = "/_unmatched"

logger = logging.getLogger("ifarmer.api")


def metric_method_label(method: str | None) -> str:
    normalized = (method or "").upper()
    if normalized in ALLOWED_HTTP_METHOD_LABELS:
        return normalized
    return "OTHER"


def metric_path_label(request: Request) -> str:
    # Route templates only; raw paths would explode label cardinality.
    route_path = getattr(request.scope.get("route"), "path", None)
    return str(route_path) if route_path else UNMATCHED_PATH_LABEL


def metric_status_label(status_code: int) -> str:
    if 100 <= int(status_code) <= 599:
        return str(int(status_code))
    return "000"


def register_observability(api: FastAPI) -> None:
    @api.middleware("http")
    async def request_observability(request: Request, call_next):
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = int(response.status_code)
            return response
        finally:
            elapsed = time.perf_counter() - started
            method = metric_method_label(request.method)
            path = metric_path_label(request)
            REQUEST_COUNT.labels(method, path, metric_status_label(status_code)).inc()
            REQUEST_LATENCY.labels(method, path).observe(elapsed)
            log_payload = {
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
            }
            if status_code >= 500:
                logger.warning("request_failed", extra=log_payload)
            else:
                logger.info("request_completed", extra=log_payload)

    @api.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
