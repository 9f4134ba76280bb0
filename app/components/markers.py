from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Callable, TypeVar, overload

TRANSIENT = "transient"
COMPONENT_MARKER_ATTR = "__ifarmer_component__"

ClassT = TypeVar("ClassT", bound=type)


@dataclass(frozen=True)
class ComponentMarker:
    contract: type | None = None
    lifetime: str = TRANSIENT


@overload
def component(cls: ClassT) -> ClassT:
    ...


@overload
def component(*, contract: type | None = None) -> Callable[[ClassT], ClassT]:
    ...


def component(cls=None, *, contract=None):
    """Mark a class as a registrable component.

    Without arguments the contract is inferred from the class name during
    discovery. Passing ``contract=`` declares the binding explicitly.
    """

    def _mark(target):
        if not inspect.isclass(target):
            raise TypeError("@component can only decorate classes")
        if contract is not None and not inspect.isclass(contract):
            raise TypeError("component contract must be a class")
        setattr(target, COMPONENT_MARKER_ATTR, ComponentMarker(contract=contract))
        return target

    if cls is None:
        return _mark
    return _mark(cls)


def component_marker(cls: type) -> ComponentMarker | None:
    # Read from the class namespace only; subclasses must opt in on their own.
    marker = vars(cls).get(COMPONENT_MARKER_ATTR)
    if isinstance(marker, ComponentMarker):
        return marker
    return None
