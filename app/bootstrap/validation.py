from __future__ import annotations

from app.config import Config

COMPONENT_RESOLUTION_POLICIES = frozenset({"strict", "lenient"})


def validate_startup_config(config: Config) -> None:
    if config.DB_POOL_SIZE <= 0:
        raise RuntimeError("DB_POOL_SIZE must be greater than 0.")
    if config.DB_MAX_OVERFLOW < 0:
        raise RuntimeError("DB_MAX_OVERFLOW must be greater than or equal to 0.")
    if config.DB_POOL_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("DB_POOL_TIMEOUT_SECONDS must be greater than 0.")
    if config.DB_POOL_RECYCLE_SECONDS <= 0:
        raise RuntimeError("DB_POOL_RECYCLE_SECONDS must be greater than 0.")
    if config.DB_CONNECT_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("DB_CONNECT_TIMEOUT_SECONDS must be greater than 0.")
    if config.DB_STATEMENT_TIMEOUT_MS <= 0:
        raise RuntimeError("DB_STATEMENT_TIMEOUT_MS must be greater than 0.")
    if config.CORS_ALLOW_CREDENTIALS and config.app_env in {"prod", "production"} and "*" in config.cors_allow_origins_list:
        raise RuntimeError("CORS_ALLOW_CREDENTIALS=1 requires explicit CORS_ALLOW_ORIGINS in production.")

    if not config.component_scan_packages_list:
        raise RuntimeError("COMPONENT_SCAN_PACKAGES must list at least one package.")
    if config.component_resolution_policy not in COMPONENT_RESOLUTION_POLICIES:
        raise RuntimeError("COMPONENT_RESOLUTION_POLICY must be one of: strict, lenient.")

    if config.IDENTITY_STORE_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("IDENTITY_STORE_TIMEOUT_SECONDS must be greater than 0.")
    if config.IDENTITY_STORE_RETRY_ATTEMPTS <= 0:
        raise RuntimeError("IDENTITY_STORE_RETRY_ATTEMPTS must be greater than 0.")
    if config.IDENTITY_STORE_RETRY_BACKOFF_SECONDS < 0:
        raise RuntimeError("IDENTITY_STORE_RETRY_BACKOFF_SECONDS must be greater than or equal to 0.")
    if config.IDENTITY_PASSWORD_MIN_LENGTH <= 0:
        raise RuntimeError("IDENTITY_PASSWORD_MIN_LENGTH must be greater than 0.")
    if config.IDENTITY_PROVISION_ON_STARTUP:
        roles = set(config.identity_roles_list)
        if not roles:
            raise RuntimeError("IDENTITY_PROVISION_ON_STARTUP=1 requires IDENTITY_ROLES to be set.")
        for prefix in ("ADMIN", "BUYER", "PRODUCER"):
            email = (getattr(config, f"DEFAULT_{prefix}_EMAIL") or "").strip()
            password = getattr(config, f"DEFAULT_{prefix}_PASSWORD") or ""
            if bool(email) != bool(password):
                raise RuntimeError(f"DEFAULT_{prefix}_EMAIL and DEFAULT_{prefix}_PASSWORD must be set together.")
        for user in config.desired_identity_state.users:
            if user.role_name not in roles:
                raise RuntimeError(f"Default user role '{user.role_name}' is not listed in IDENTITY_ROLES.")
