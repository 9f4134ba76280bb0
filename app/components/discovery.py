"""Candidate sources for component registration.

A candidate source yields :class:`CandidateType` descriptors. The module scan
walks configured packages at startup; the static source takes an explicit
manifest of classes and does no importing at all.
"""

from __future__ import annotations

import abc
import importlib
import inspect
import pkgutil
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Generic, Protocol

from app.components.markers import ComponentMarker, component_marker

_NON_CONTRACT_BASES: tuple[type, ...] = (object, Protocol, Generic, abc.ABC)  # type: ignore[arg-type]


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def is_interface(cls: type) -> bool:
    return bool(getattr(cls, "_is_protocol", False))


def is_contract(cls: type) -> bool:
    if cls in _NON_CONTRACT_BASES:
        return False
    # A direct abc.ABC subclass is a contract even before it declares abstract methods.
    return is_interface(cls) or inspect.isabstract(cls) or abc.ABC in cls.__bases__


@dataclass(frozen=True)
class CandidateType:
    qualified_name: str
    implementation: type
    marker: ComponentMarker | None
    contracts: tuple[type, ...]
    is_abstract: bool
    is_interface: bool

    @property
    def name(self) -> str:
        return self.implementation.__name__

    @property
    def is_registrable(self) -> bool:
        return self.marker is not None and not self.is_abstract and not self.is_interface


def describe_candidate(cls: type) -> CandidateType:
    return CandidateType(
        qualified_name=qualified_name(cls),
        implementation=cls,
        marker=component_marker(cls),
        contracts=tuple(base for base in cls.__mro__[1:] if is_contract(base)),
        is_abstract=inspect.isabstract(cls),
        is_interface=is_interface(cls),
    )


class CandidateSource(Protocol):
    def iter_candidates(self) -> Iterable[CandidateType]:
        ...


class StaticCandidateSource:
    def __init__(self, classes: Iterable[type]) -> None:
        self._classes = tuple(classes)

    def iter_candidates(self) -> Iterator[CandidateType]:
        for cls in self._classes:
            if not inspect.isclass(cls):
                raise TypeError(f"component manifest entries must be classes, got {cls!r}")
            yield describe_candidate(cls)


def _raise_package_import_error(package_name: str) -> None:
    raise ImportError(f"failed to import package during component scan: {package_name}")


class ModuleScanCandidateSource:
    """Scan packages for classes defined in modules under approved prefixes."""

    def __init__(self, packages: Sequence[str], *, module_prefixes: Sequence[str] = ()) -> None:
        self._packages = tuple(packages)
        self._module_prefixes = tuple(module_prefixes)

    def _is_approved(self, module_name: str) -> bool:
        if not self._module_prefixes:
            return True
        return any(module_name.startswith(prefix) for prefix in self._module_prefixes)

    def iter_module_names(self) -> Iterator[str]:
        seen: set[str] = set()
        for package_name in self._packages:
            package = importlib.import_module(package_name)
            names = [package.__name__]
            search_path = getattr(package, "__path__", None)
            if search_path is not None:
                names.extend(
                    module_info.name
                    for module_info in pkgutil.walk_packages(
                        search_path,
                        prefix=f"{package.__name__}.",
                        onerror=_raise_package_import_error,
                    )
                )
            for name in names:
                if name in seen or not self._is_approved(name):
                    continue
                seen.add(name)
                yield name

    def iter_candidates(self) -> Iterator[CandidateType]:
        for module_name in self.iter_module_names():
            module = importlib.import_module(module_name)
            for _, member in inspect.getmembers(module, inspect.isclass):
                if member.__module__ != module.__name__:
                    continue
                yield describe_candidate(member)
