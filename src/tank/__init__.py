"""Minimal dependency injection container.

This package provides a small dependency injection container for Python,
binding identifiers (names, classes or pre-built instances) to values or
factories, and resolving them with auto-wiring of annotated factory parameters.

Exports:
- `Container`: Main DI container with `bind`/`singleton`/`make`/`remove` and
  map-style access (`c["db"]`).
- `Value`: Wrapper marking a function as a plain value rather than a factory.
- `Binding`: Record of a factory and its singleton flag, as returned by
  `Container.get_bindings()`.
- Errors: `ContainerError` and its subclasses.
- `is_loaded_type` / `type_name`: helpers used by identifier normalization.
"""

from ._container import Binding, Container, Value
from ._errors import (
    AlreadySingletonError,
    ContainerError,
    CyclicDependencyError,
    InvalidIdentifierTypeError,
    ResolutionError,
    UnboundIdentifierError,
)
from ._identifiers import NAMESPACE_SEPARATOR, is_loaded_type, type_name


__all__ = [
    "NAMESPACE_SEPARATOR",
    "AlreadySingletonError",
    "Binding",
    "Container",
    "ContainerError",
    "CyclicDependencyError",
    "InvalidIdentifierTypeError",
    "ResolutionError",
    "UnboundIdentifierError",
    "Value",
    "is_loaded_type",
    "type_name",
]
