#!/usr/bin/env python3
"""Provision the configured roles and default users once, then exit."""

from __future__ import annotations

import argparse
import sys
from contextlib import suppress

from app.bootstrap import build_component_context, build_component_resolver, run_identity_provisioning, validate_startup_config
from app.components import ServiceResolver
from app.config import Config
from app.database import build_connection_provider, init_db
from app.errors import StartupError
from app.identity import ProvisioningReport
from app.logging_config import configure_logging


def build_resolver(config: Config) -> ServiceResolver:
    engine = init_db(
        config.database_url,
        pool_size=1,
        max_overflow=0,
        connect_timeout_seconds=config.DB_CONNECT_TIMEOUT_SECONDS,
        statement_timeout_ms=config.DB_STATEMENT_TIMEOUT_MS,
    )
    try:
        return build_component_resolver(
            config,
            context=build_component_context(config, connection_provider=build_connection_provider(engine)),
        )
    except StartupError:
        with suppress(Exception):
            engine.dispose()
        raise


def format_report(report: ProvisioningReport) -> str:
    if not report.changed:
        return "Identity store already matches the desired state."
    lines = []
    if report.roles_created:
        lines.append("Roles created: " + ", ".join(report.roles_created))
    if report.users_created:
        lines.append("Users created: " + ", ".join(report.users_created))
    if report.associations_added:
        lines.append(
            "Role assignments added: " + ", ".join(f"{email} -> {role}" for email, role in report.associations_added)
        )
    return "\n".join(lines)


def main(argv: list[str] | None = None, *, config: Config | None = None) -> int:
    parser = argparse.ArgumentParser(description="Provision identity roles and default users")
    parser.add_argument("--dry-run", action="store_true", help="Print the desired state without touching the store")
    args = parser.parse_args(argv)

    active_config = config or Config()
    configure_logging(level=active_config.LOG_LEVEL, json_logs=active_config.LOG_JSON)

    try:
        validate_startup_config(active_config)
        if args.dry_run:
            state = active_config.desired_identity_state
            print("Roles: " + (", ".join(state.roles) or "(none)"))
            for user in state.users:
                print(f"User: {user.email} -> {user.role_name}")
            return 0
        report = run_identity_provisioning(build_resolver(active_config), active_config)
    except RuntimeError as exc:
        # StartupError and configuration errors both land here.
        print(f"Identity provisioning failed: {exc}", file=sys.stderr)
        return 1

    print(format_report(report))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
