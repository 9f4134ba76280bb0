from __future__ import annotations

import inspect
import threading
import typing
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeVar, cast

from fastapi import Request

from app.components.discovery import qualified_name
from app.errors import ContractResolutionError, StartupError

if TYPE_CHECKING:
    from app.components.registry import Binding

T = TypeVar("T")


class ComponentNotRegisteredError(StartupError, LookupError):
    pass


class ComponentResolutionError(StartupError):
    pass


class ServiceResolver:
    """Process-wide contract -> implementation table.

    Bindings become visible only through :meth:`register_batch`, which swaps
    the whole table at once. Every :meth:`resolve` builds a new instance.
    """

    def __init__(self, *, context: Mapping[str, Any] | None = None) -> None:
        self._context = MappingProxyType(dict(context or {}))
        self._bindings: Mapping[type, Binding] = MappingProxyType({})
        self._lock = threading.Lock()

    @property
    def bindings(self) -> tuple[Binding, ...]:
        return tuple(sorted(self._bindings.values(), key=lambda binding: binding.contract_name))

    def is_registered(self, contract: type) -> bool:
        return contract in self._bindings

    def register_batch(self, bindings: Iterable[Binding]) -> None:
        staged: dict[type, Binding] = {}
        for binding in bindings:
            if binding.contract in staged:
                raise ContractResolutionError(
                    f"Contract {binding.contract_name} is bound twice in one batch "
                    f"({staged[binding.contract].implementation_name}, {binding.implementation_name}).",
                    candidate=binding.implementation_name,
                )
            staged[binding.contract] = binding

        with self._lock:
            already_bound = [contract for contract in staged if contract in self._bindings]
            if already_bound:
                names = ", ".join(sorted(qualified_name(contract) for contract in already_bound))
                raise ContractResolutionError(f"Contracts already registered: {names}.")
            merged = dict(self._bindings)
            merged.update(staged)
            self._bindings = MappingProxyType(merged)

    def resolve(self, contract: type[T]) -> T:
        return cast(T, self._create(contract, ()))

    def _create(self, contract: type, chain: tuple[type, ...]) -> Any:
        binding = self._bindings.get(contract)
        if binding is None:
            raise ComponentNotRegisteredError(f"No component registered for contract {qualified_name(contract)}.")
        if contract in chain:
            cycle = " -> ".join(qualified_name(item) for item in (*chain, contract))
            raise ComponentResolutionError(f"Circular component dependency: {cycle}.")
        kwargs = self._constructor_kwargs(binding, (*chain, contract))
        return binding.implementation(**kwargs)

    def _constructor_kwargs(self, binding: Binding, chain: tuple[type, ...]) -> dict[str, Any]:
        implementation = binding.implementation
        try:
            hints = typing.get_type_hints(implementation.__init__)
        except (NameError, TypeError):
            hints = {}

        kwargs: dict[str, Any] = {}
        for name, parameter in inspect.signature(implementation).parameters.items():
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            annotation = hints.get(name)
            if parameter.kind is not inspect.Parameter.POSITIONAL_ONLY:
                if inspect.isclass(annotation) and annotation in self._bindings:
                    kwargs[name] = self._create(annotation, chain)
                    continue
                if name in self._context:
                    kwargs[name] = self._context[name]
                    continue
            if parameter.default is inspect.Parameter.empty:
                raise ComponentResolutionError(
                    f"Cannot build {binding.implementation_name}: no binding or context value for parameter '{name}'."
                )
        return kwargs


def provide(contract: type[T]) -> Callable[[Request], T]:
    """FastAPI dependency resolving ``contract`` through ``app.state.resolver``."""

    def _dependency(request: Request) -> T:
        resolver = getattr(request.app.state, "resolver", None)
        if not isinstance(resolver, ServiceResolver):
            raise RuntimeError("app.state.resolver is not configured")
        return resolver.resolve(contract)

    return _dependency
