from __future__ import annotations

import logging

from app.components import ServiceResolver
from app.config import Config
from app.identity import IdentityProvisionerPort, ProvisioningReport


def run_identity_provisioning(resolver: ServiceResolver, config: Config) -> ProvisioningReport:
    provisioner = resolver.resolve(IdentityProvisionerPort)
    return provisioner.provision(config.desired_identity_state)


def provision_identity_on_startup(
    resolver: ServiceResolver,
    config: Config,
    *,
    logger: logging.Logger,
) -> ProvisioningReport | None:
    if not config.IDENTITY_PROVISION_ON_STARTUP:
        logger.info("identity_provisioning_skipped")
        return None
    return run_identity_provisioning(resolver, config)
