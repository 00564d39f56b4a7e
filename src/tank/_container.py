from __future__ import annotations

import functools
import inspect
import logging
import threading
import types
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, get_type_hints

from ._errors import (
    AlreadySingletonError,
    CyclicDependencyError,
    InvalidIdentifierTypeError,
    ResolutionError,
    UnboundIdentifierError,
)
from ._identifiers import NAMESPACE_SEPARATOR, absolute, bare, is_loaded_type, is_type_style, type_name


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    # A string name, a class used as a type marker, or a pre-built instance.
    Identifier = str | type | object


_MISSING: Any = object()

_FACTORY_TYPES = (types.FunctionType, types.MethodType, functools.partial)


@dataclass(frozen=True)
class Value:
    """Wraps an object so it resolves as-is, even when it is a function.

    Example:
      container.bind("on_error", Value(print_exception))
      container.make("on_error") is print_exception

    """

    value: object


@dataclass
class Binding:
    factory: Callable[..., object]
    singleton: bool
    cached_instance: object = field(default=_MISSING, repr=False)  # first resolved singleton value

    @property
    def resolved(self) -> bool:
        return self.cached_instance is not _MISSING


class Container:
    """Minimal DI container.

    - bind values, factories or pre-built instances under an identifier
    - resolve with auto-wiring of annotated factory parameters
    - singletons: resolved once, cannot be rebound
    - map-style access: ``"db" in c``, ``c["db"]``, ``c["db"] = ...``, ``del c["db"]``.
    """

    _instance: ClassVar[Container | None] = None

    def __init__(
        self,
        *,
        prefix: str = "",
        separator: str = NAMESPACE_SEPARATOR,
        type_exists: Callable[[str], bool] | None = None,
    ) -> None:
        if not separator:
            msg = "`separator` must be a non-empty string."
            raise ValueError(msg)

        self._prefix = prefix
        self._separator = separator
        self._type_exists = type_exists or functools.partial(is_loaded_type, separator=separator)

        self._classes: set[str] = set()
        self._keys: set[str] = set()
        self._values: dict[str, Binding] = {}
        self._resolving: list[str] = []
        self._lock = threading.RLock()

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def separator(self) -> str:
        return self._separator

    def bind(self, identifier: Identifier, value: object = None, singleton: bool = False) -> object:  # noqa: FBT001, FBT002
        """Register `value` under `identifier` and return `value`.

        Functions, methods and partials are stored as factories; anything else is
        returned unchanged by `make`. When `identifier` is an instance, it becomes the
        value and its class name the identifier.

        Example:
          container.bind("logger", "stdout-logger")
          container.bind("db", lambda: connect(dsn), singleton=True)
          container.bind(Mailer(), singleton=True)

        """
        with self._lock:
            instance = self._is_instance(identifier)
            if instance:
                value = identifier
                key = type_name(type(identifier), self._separator)
                if is_type_style(key, self._separator):
                    key = absolute(key, self._separator)
            else:
                key = self._normalize(identifier)

            current = self._values.get(key)
            if current is not None and current.singleton:
                msg = f"Identifier `{key}` is a singleton and cannot be rebound"
                raise AlreadySingletonError(msg)

            if instance:
                self._classes.add(key)

            factory = value if isinstance(value, _FACTORY_TYPES) else _constant(value)
            self._values[key] = Binding(factory=factory, singleton=singleton)
            self._keys.add(key)

        logger.debug("Bound %r (singleton=%s)", key, singleton)
        return value

    def bind_if(self, identifier: Identifier, value: object = None, singleton: bool = False) -> None:  # noqa: FBT001, FBT002
        """Bind only when nothing is bound under `identifier` yet."""
        with self._lock:
            if not self.exists(identifier):
                self.bind(identifier, value, singleton)

    def singleton(self, identifier: Identifier, value: object = None) -> object:
        return self.bind(identifier, value, singleton=True)

    def exists(self, identifier: Identifier) -> bool:
        with self._lock:
            return self._normalize(identifier) in self._keys

    def bound(self, identifier: Identifier) -> bool:
        return self.exists(identifier)

    def is_singleton(self, identifier: str | type) -> bool:
        if not isinstance(identifier, str) and not inspect.isclass(identifier):
            msg = f"Identifier must be a string or a class, got {type(identifier).__name__}"
            raise InvalidIdentifierTypeError(msg)

        with self._lock:
            binding = self._values.get(self._normalize(identifier))
            return binding is not None and binding.singleton

    def get_bindings(self) -> Mapping[str, Binding]:
        """Read-only snapshot of all bindings, keyed by canonical identifier."""
        with self._lock:
            return MappingProxyType({key: replace(binding) for key, binding in self._values.items()})

    def make(self, identifier: Identifier, parameters: Sequence[object] = ()) -> Any:
        """Resolve `identifier`.

        - Singletons return their first resolved value.
        - Otherwise the bound factory is called through `call_closure`, with
          `parameters` filling the positional slots auto-wiring leaves open.
        """
        with self._lock:
            key = self._normalize(identifier)
            if key not in self._keys:
                msg = f"Identifier `{key}` is not defined"
                raise UnboundIdentifierError(msg)

            binding = self._values[key]
            if binding.singleton and binding.resolved:
                return binding.cached_instance

            if key in self._resolving:
                raise CyclicDependencyError([*self._resolving[self._resolving.index(key) :], key])

            self._resolving.append(key)
            try:
                instance = self.call_closure(binding.factory, parameters)
            finally:
                self._resolving.pop()

            if binding.singleton:
                binding.cached_instance = instance

            return instance

    def call_closure(self, factory: object, parameters: Sequence[object] = ()) -> Any:
        """Call `factory` with auto-wired arguments, then resolve what it returns the same way.

        A returned factory receives the positional arguments assembled for the one that
        produced it, injected values included. Non-factory values are returned unchanged,
        which ends the chain.
        """
        return Invoker(self).invoke(factory, list(parameters))

    def remove(self, identifier: Identifier) -> None:
        with self._lock:
            key = self._normalize(identifier)
            self._keys.discard(key)
            self._values.pop(key, None)

        logger.debug("Removed %r", key)

    def flush(self) -> None:
        """Forget every class, key and binding."""
        with self._lock:
            self._classes.clear()
            self._keys.clear()
            self._values.clear()

        logger.debug("Flushed container")

    def is_container_type(self, annotation: object) -> bool:
        """Whether a parameter annotated with `annotation` should receive this container."""
        cls = type(self)
        if inspect.isclass(annotation):
            return annotation is not object and annotation in cls.__mro__

        if isinstance(annotation, str):
            names = {type_name(cls, self._separator)}
            names.update(type_name(base, self._separator) for base in cls.__bases__ if base is not object)
            return bare(annotation, self._separator) in names

        return False

    @staticmethod
    def get_instance() -> Container | None:
        return Container._instance

    @staticmethod
    def set_instance(container: Container | None) -> Container | None:
        """Set the process-wide container. Meant to be called once at startup."""
        Container._instance = container
        return container

    def __contains__(self, identifier: Identifier) -> bool:
        return self.exists(identifier)

    def __getitem__(self, identifier: Identifier) -> Any:
        return self.make(identifier)

    def __setitem__(self, identifier: Identifier, value: object) -> None:
        self.bind(identifier, value)

    def __delitem__(self, identifier: Identifier) -> None:
        self.remove(identifier)

    @staticmethod
    def _is_instance(identifier: object) -> bool:
        return not isinstance(identifier, str) and not inspect.isclass(identifier)

    def _normalize(self, identifier: object) -> str:
        if inspect.isclass(identifier):
            return self._get_class_prefix(type_name(identifier, self._separator))
        if not isinstance(identifier, str):
            return self._get_class_prefix(type_name(type(identifier), self._separator))
        return self._get_class_prefix(self._get_id(identifier))

    def _get_id(self, identifier: str) -> str:
        """Apply the key prefix to the bare spelling of `identifier`.

        Skipped when the identifier already carries the prefix, names a loaded class, or is
        already known unprefixed (a bound key or a recorded class, e.g. a class defined
        inside a function, which the loaded-type check cannot see).
        """
        identifier = bare(identifier, self._separator)
        if (
            not self._prefix
            or identifier.startswith(self._prefix)
            or identifier in self._keys
            or absolute(identifier, self._separator) in self._classes
            or self._type_exists(identifier)
        ):
            return identifier
        return self._prefix + identifier

    def _get_class_prefix(self, identifier: str) -> str:
        """Pick the absolute spelling of a type-style identifier when it is a known class, else the bare one."""
        if not is_type_style(identifier, self._separator):
            return identifier

        candidate = absolute(identifier, self._separator)
        if candidate in self._classes:
            return candidate
        return bare(identifier, self._separator)


class Invoker:
    def __init__(self, container: Container) -> None:
        self._container = container

    def invoke(self, factory: object, parameters: list[object]) -> Any:
        if isinstance(factory, Value):
            return factory.value
        if not isinstance(factory, _FACTORY_TYPES):
            return factory

        args, kwargs = self._arguments(factory, parameters)
        result = factory(*args, **kwargs)
        if result is factory:
            raise CyclicDependencyError([_describe(factory), _describe(factory)])

        return self.invoke(result, args)

    def _arguments(
        self, factory: Callable[..., object], parameters: list[object]
    ) -> tuple[list[object], dict[str, object]]:
        sig = inspect.signature(factory)
        hints = _get_factory_type_hints(factory)

        positional = [p for p in sig.parameters.values() if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
        keyword_only = [p for p in sig.parameters.values() if p.kind is p.KEYWORD_ONLY]
        variadic = any(p.kind is p.VAR_POSITIONAL for p in sig.parameters.values())

        slots = [self._inject(p, hints) for p in positional]
        kwargs: dict[str, object] = {}
        for p in keyword_only:
            value = self._inject(p, hints)
            if value is not _MISSING:
                kwargs[p.name] = value

        injected = kwargs or any(value is not _MISSING for value in slots)
        # Bare `lambda c: ...` and `lambda *c: ...` factories receive the container.
        inject_self = bool(positional or variadic) and not injected and not parameters
        if inject_self and positional:
            slots[0] = self._container

        explicit = iter(parameters)
        for index, value in enumerate(slots):
            if value is _MISSING:
                slots[index] = next(explicit, _MISSING)

        extras = list(explicit)
        if inject_self and not positional:
            extras = [self._container]
        if extras and not variadic:
            logger.debug("Dropping %d extra parameter(s) for %s", len(extras), _describe(factory))
            extras = []

        self._check_satisfied(factory, positional, slots, keyword_only, kwargs, hints)

        # Open optional slots before the last filled one take their defaults.
        filled = [index for index, value in enumerate(slots) if value is not _MISSING]
        last = filled[-1] if filled else -1
        args = [positional[i].default if slots[i] is _MISSING else slots[i] for i in range(last + 1)]

        return [*args, *extras], kwargs

    def _inject(self, p: inspect.Parameter, hints: dict[str, Any]) -> object:
        """Resolution precedence:
        1. the container itself, when annotated with its type
        2. a binding registered under the annotation
        3. nothing (left for explicit parameters or the default).
        """
        ann = hints.get(p.name, p.annotation)
        if ann is inspect.Parameter.empty:
            return _MISSING

        if self._container.is_container_type(ann):
            return self._container

        if (inspect.isclass(ann) or isinstance(ann, str)) and self._container.exists(ann):
            return self._container.make(ann)

        return _MISSING

    def _check_satisfied(  # noqa: PLR0913
        self,
        factory: Callable[..., object],
        positional: list[inspect.Parameter],
        slots: list[object],
        keyword_only: list[inspect.Parameter],
        kwargs: dict[str, object],
        hints: dict[str, Any],
    ) -> None:
        missing = [p for p, value in zip(positional, slots) if value is _MISSING and p.default is p.empty]
        missing += [p for p in keyword_only if p.name not in kwargs and p.default is p.empty]
        if not missing:
            return

        p = missing[0]
        ann = hints.get(p.name, p.annotation)
        ann_repr = getattr(ann, "__name__", repr(ann)) if ann is not inspect.Parameter.empty else "no-annotation"
        msg = (
            f"Cannot satisfy factory parameter '{p.name}' for {_describe(factory)}. "
            f"No binding/explicit parameter/default found (annotation: {ann_repr})."
        )
        raise ResolutionError(msg)


def _constant(value: object) -> Callable[[], object]:
    def constant() -> object:
        return value

    return constant


def _describe(factory: object) -> str:
    if isinstance(factory, functools.partial):
        factory = factory.func
    return getattr(factory, "__qualname__", repr(factory))


def _get_factory_type_hints(factory: Callable[..., object]) -> dict[str, Any]:
    target = factory.func if isinstance(factory, functools.partial) else factory
    try:
        hints = get_type_hints(target)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, _describe(factory))
        hints = {}

    return hints
