from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    code: str = Field(examples=["NOT_FOUND"])
    message: str = Field(examples=["Not Found"])
    error: str = Field(examples=["Not Found"])
    request_id: Optional[str] = Field(default=None, examples=["c752262e-cf42-4075-917b-95ffcb5ceeeb"])
    details: Any = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "COMPONENT_UNAVAILABLE",
                "message": "Service component is not available",
                "error": "Service component is not available",
                "request_id": "c752262e-cf42-4075-917b-95ffcb5ceeeb",
            }
        }
    )


class HealthResponse(BaseModel):
    status: str = Field(examples=["ok"])


class ReadinessCheck(BaseModel):
    ok: bool
    detail: Optional[str] = None


class ReadinessResponse(BaseModel):
    status: str = Field(examples=["ok", "degraded"])
    checks: dict[str, ReadinessCheck]


class ComponentBindingItem(BaseModel):
    contract: str = Field(examples=["app.identity.ports.IdentityStorePort"])
    implementation: str = Field(examples=["app.identity.store.IdentityStore"])
    lifetime: str = Field(examples=["transient"])


class ComponentBindingsResponse(BaseModel):
    total: int
    items: list[ComponentBindingItem]
