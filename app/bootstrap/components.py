from __future__ import annotations

from typing import Any

from app.components import (
    CandidateSource,
    ContractResolutionPolicy,
    ModuleScanCandidateSource,
    ServiceResolver,
    discover_and_register,
)
from app.config import Config
from app.database import ConnectionProvider
from app.identity.store import PasswordPolicy


def build_component_context(config: Config, *, connection_provider: ConnectionProvider) -> dict[str, Any]:
    return {
        "connection_provider": connection_provider,
        "password_policy": PasswordPolicy(min_length=config.IDENTITY_PASSWORD_MIN_LENGTH),
        "store_timeout_seconds": config.IDENTITY_STORE_TIMEOUT_SECONDS,
        "store_retry_attempts": config.IDENTITY_STORE_RETRY_ATTEMPTS,
        "store_retry_backoff_seconds": config.IDENTITY_STORE_RETRY_BACKOFF_SECONDS,
    }


def build_component_resolver(
    config: Config,
    *,
    context: dict[str, Any],
    source: CandidateSource | None = None,
) -> ServiceResolver:
    selected_source = source or ModuleScanCandidateSource(
        config.component_scan_packages_list,
        module_prefixes=config.component_module_prefixes_list,
    )
    resolver = ServiceResolver(context=context)
    discover_and_register(
        selected_source,
        resolver,
        policy=ContractResolutionPolicy(config.component_resolution_policy),
    )
    return resolver
