from app.components.discovery import (
    CandidateSource,
    CandidateType,
    ModuleScanCandidateSource,
    StaticCandidateSource,
    describe_candidate,
)
from app.components.markers import TRANSIENT, ComponentMarker, component
from app.components.registry import (
    Binding,
    ContractResolutionPolicy,
    build_bindings,
    discover_and_register,
    resolve_contract,
)
from app.components.resolver import (
    ComponentNotRegisteredError,
    ComponentResolutionError,
    ServiceResolver,
    provide,
)

__all__ = [
    "TRANSIENT",
    "Binding",
    "CandidateSource",
    "CandidateType",
    "ComponentMarker",
    "ComponentNotRegisteredError",
    "ComponentResolutionError",
    "ContractResolutionPolicy",
    "ModuleScanCandidateSource",
    "ServiceResolver",
    "StaticCandidateSource",
    "build_bindings",
    "component",
    "describe_candidate",
    "discover_and_register",
    "provide",
    "resolve_contract",
]
