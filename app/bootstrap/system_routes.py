from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from app.bootstrap.contracts import HealthCheck
from app.components import ServiceResolver
from app.errors import http_error
from app.schemas import (
    ComponentBindingItem,
    ComponentBindingsResponse,
    ErrorResponse,
    HealthResponse,
    ReadinessCheck,
    ReadinessResponse,
)


def _request_resolver(request: Request) -> ServiceResolver:
    resolver = getattr(request.app.state, "resolver", None)
    if not isinstance(resolver, ServiceResolver):
        raise http_error(503, "COMPONENT_UNAVAILABLE", "Component registry is not ready")
    return resolver


def register_system_routes(
    api: FastAPI,
    *,
    db_health_check: HealthCheck,
    components_health_check: HealthCheck,
) -> None:
    @api.get("/", tags=["system"])
    async def hello_world() -> PlainTextResponse:
        return PlainTextResponse("API Server Available")

    @api.get("/health/live", tags=["system"], response_model=HealthResponse, responses={500: {"model": ErrorResponse}})
    async def health_live() -> HealthResponse:
        return HealthResponse(status="ok")

    @api.get("/health", tags=["system"], response_model=HealthResponse, responses={500: {"model": ErrorResponse}})
    async def health() -> HealthResponse:
        return await health_live()

    @api.get(
        "/health/ready",
        tags=["system"],
        response_model=ReadinessResponse,
        responses={500: {"model": ErrorResponse}, 503: {"model": ReadinessResponse}},
    )
    async def health_ready() -> ReadinessResponse | JSONResponse:
        db_ok, db_detail = db_health_check()
        components_ok, components_detail = components_health_check()
        checks = {
            "database": ReadinessCheck(ok=db_ok, detail=db_detail),
            "components": ReadinessCheck(ok=components_ok, detail=components_detail),
        }
        payload = ReadinessResponse(
            status="ok" if db_ok and components_ok else "degraded",
            checks=checks,
        )
        if db_ok and components_ok:
            return payload
        return JSONResponse(status_code=503, content=payload.model_dump())

    @api.get(
        "/api/system/components",
        tags=["system"],
        summary="List registered component bindings",
        response_model=ComponentBindingsResponse,
        responses={503: {"model": ErrorResponse}},
    )
    async def list_components(request: Request) -> ComponentBindingsResponse:
        bindings = _request_resolver(request).bindings
        return ComponentBindingsResponse(
            total=len(bindings),
            items=[
                ComponentBindingItem(
                    contract=binding.contract_name,
                    implementation=binding.implementation_name,
                    lifetime=binding.lifetime,
                )
                for binding in bindings
            ],
        )
