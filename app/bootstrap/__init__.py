from app.bootstrap.components import build_component_context, build_component_resolver
from app.bootstrap.exception_handlers import register_exception_handlers
from app.bootstrap.identity import provision_identity_on_startup, run_identity_provisioning
from app.bootstrap.middleware import register_core_middleware
from app.bootstrap.system_routes import register_system_routes
from app.bootstrap.validation import validate_startup_config

__all__ = [
    "build_component_context",
    "build_component_resolver",
    "provision_identity_on_startup",
    "register_core_middleware",
    "register_exception_handlers",
    "register_system_routes",
    "run_identity_provisioning",
    "validate_startup_config",
]
