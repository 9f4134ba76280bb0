import logging
from contextlib import asynccontextmanager
from contextlib import suppress

from fastapi import FastAPI
from sqlalchemy import text

from app.bootstrap import (
    build_component_context,
    build_component_resolver,
    provision_identity_on_startup,
    register_core_middleware,
    register_exception_handlers,
    register_system_routes,
    validate_startup_config,
)
from app.components import ServiceResolver
from app.config import Config
from app.database import build_connection_provider, init_db
from app.errors import StartupError
from app.logging_config import configure_logging
from app.observability import register_observability
from app.version import APP_VERSION

OPENAPI_TAGS: list[dict[str, str]] = [
    {"name": "system", "description": "System, health and component registry endpoints"},
]

logger = logging.getLogger("ifarmer.api")


def create_app(app_config: Config | None = None) -> FastAPI:
    if app_config is None:
        app_config = Config()

    configure_logging(level=app_config.LOG_LEVEL, json_logs=app_config.LOG_JSON)

    @asynccontextmanager
    async def _lifespan(_api: FastAPI):
        try:
            yield
        finally:
            db_engine = getattr(_api.state, "db_engine", None)
            if db_engine is None or not hasattr(db_engine, "dispose"):
                return
            with suppress(Exception):
                db_engine.dispose()

    api = FastAPI(
        title="IFarmer API",
        version=APP_VERSION,
        description="IFarmer marketplace API",
        openapi_tags=OPENAPI_TAGS,
        lifespan=_lifespan,
    )
    api.state.config = app_config

    validate_startup_config(app_config)
    register_core_middleware(api, app_config)

    db_engine = init_db(
        app_config.database_url,
        pool_size=app_config.DB_POOL_SIZE,
        max_overflow=app_config.DB_MAX_OVERFLOW,
        pool_timeout_seconds=app_config.DB_POOL_TIMEOUT_SECONDS,
        pool_recycle_seconds=app_config.DB_POOL_RECYCLE_SECONDS,
        connect_timeout_seconds=app_config.DB_CONNECT_TIMEOUT_SECONDS,
        statement_timeout_ms=app_config.DB_STATEMENT_TIMEOUT_MS,
    )
    connection_provider = build_connection_provider(db_engine)
    api.state.db_engine = db_engine
    api.state.connection_provider = connection_provider

    try:
        resolver = build_component_resolver(
            app_config,
            context=build_component_context(app_config, connection_provider=connection_provider),
        )
        api.state.identity_provisioning = provision_identity_on_startup(resolver, app_config, logger=logger)
    except StartupError as exc:
        logger.error("startup_aborted", extra={"error": str(exc)})
        with suppress(Exception):
            db_engine.dispose()
        raise
    # Published only once discovery and provisioning have both completed.
    api.state.resolver = resolver

    register_observability(api)

    def db_health_check() -> tuple[bool, str | None]:
        try:
            with api.state.connection_provider() as conn:
                conn.execute(text("SELECT 1"))
            return True, None
        except Exception as exc:
            logger.exception("health_db_check_failed", extra={"error": type(exc).__name__})
            return False, "database connection failed"

    def components_health_check() -> tuple[bool, str | None]:
        active = getattr(api.state, "resolver", None)
        if not isinstance(active, ServiceResolver):
            return False, "component registry not initialized"
        if not active.bindings:
            return False, "no components registered"
        return True, None

    register_system_routes(
        api,
        db_health_check=db_health_check,
        components_health_check=components_health_check,
    )
    register_exception_handlers(api, logger=logger)

    return api
