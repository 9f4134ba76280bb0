from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from app.components.discovery import CandidateSource, CandidateType, qualified_name
from app.components.markers import TRANSIENT
from app.components.resolver import ServiceResolver
from app.errors import ContractResolutionError
from app.observability import COMPONENT_BINDINGS

logger = logging.getLogger("ifarmer.components")


class ContractResolutionPolicy(str, Enum):
    STRICT = "strict"
    LENIENT = "lenient"


@dataclass(frozen=True)
class Binding:
    contract: type
    implementation: type
    lifetime: str = TRANSIENT

    @property
    def contract_name(self) -> str:
        return qualified_name(self.contract)

    @property
    def implementation_name(self) -> str:
        return qualified_name(self.implementation)


def resolve_contract(candidate: CandidateType) -> type:
    marker = candidate.marker
    if marker is not None and marker.contract is not None:
        if marker.contract not in candidate.contracts:
            raise ContractResolutionError(
                f"Component {candidate.qualified_name} declares contract "
                f"{qualified_name(marker.contract)} but does not implement it.",
                candidate=candidate.qualified_name,
            )
        return marker.contract

    for contract in candidate.contracts:
        if candidate.name in contract.__name__:
            return contract

    implemented = ", ".join(contract.__name__ for contract in candidate.contracts) or "none"
    raise ContractResolutionError(
        f"No contract found for component {candidate.qualified_name}: "
        f"no implemented contract name contains '{candidate.name}' (implemented: {implemented}).",
        candidate=candidate.qualified_name,
    )


def build_bindings(
    candidates: Iterable[CandidateType],
    *,
    policy: ContractResolutionPolicy = ContractResolutionPolicy.STRICT,
) -> tuple[Binding, ...]:
    registrable = sorted(
        (candidate for candidate in candidates if candidate.is_registrable),
        key=lambda candidate: candidate.qualified_name,
    )
    bindings: dict[type, Binding] = {}
    for candidate in registrable:
        try:
            contract = resolve_contract(candidate)
        except ContractResolutionError as exc:
            if policy is ContractResolutionPolicy.STRICT:
                COMPONENT_BINDINGS.labels(policy.value, "failed").inc()
                raise
            COMPONENT_BINDINGS.labels(policy.value, "skipped").inc()
            logger.warning("component_skipped", extra={"component": candidate.qualified_name, "error": str(exc)})
            continue

        existing = bindings.get(contract)
        if existing is not None:
            COMPONENT_BINDINGS.labels(policy.value, "duplicate").inc()
            logger.warning(
                "component_contract_already_bound",
                extra={
                    "component": candidate.qualified_name,
                    "contract": qualified_name(contract),
                    "error": f"kept {existing.implementation_name}",
                },
            )
            continue
        bindings[contract] = Binding(contract=contract, implementation=candidate.implementation)
    return tuple(bindings.values())


def discover_and_register(
    source: CandidateSource,
    resolver: ServiceResolver,
    *,
    policy: ContractResolutionPolicy = ContractResolutionPolicy.STRICT,
) -> frozenset[Binding]:
    """Bind every marked component from ``source`` and publish them in one batch.

    Nothing reaches ``resolver`` unless the whole pass succeeds.
    """
    bindings = build_bindings(source.iter_candidates(), policy=policy)
    resolver.register_batch(bindings)
    for binding in bindings:
        COMPONENT_BINDINGS.labels(policy.value, "bound").inc()
        logger.info(
            "component_bound",
            extra={"component": binding.implementation_name, "contract": binding.contract_name},
        )
    return frozenset(bindings)
