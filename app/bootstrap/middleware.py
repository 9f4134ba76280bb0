from __future__ import annotations

from collections.abc import Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import Response

from app.config import Config

REQUEST_ID_HEADER = "X-Request-Id"


def register_core_middleware(api: FastAPI, config: Config) -> None:
    api.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins_list,
        allow_methods=config.cors_allow_methods_list,
        allow_headers=config.cors_allow_headers_list,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
    )
    api.add_middleware(TrustedHostMiddleware, allowed_hosts=config.allowed_hosts_list)

    @api.middleware("http")
    async def request_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or getattr(request.state, "request_id", None) or str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
